import json

import numpy as np

from adaptivebrain import (
    DISK_PUZZLE,
    MATCHING,
    Context,
    EpsilonGreedyBandit,
    FileStore,
    MemoryStore,
    StateStorage,
)
from adaptivebrain.actions import action_to_dict
from adaptivebrain.storage import KeyValueStore


def setup_store(tmp_path):
    state_dir = tmp_path / "state"
    return FileStore(str(state_dir))


def ctx(level, acc, speed, tod="morning"):
    return Context(
        current_level=level,
        recent_accuracy=acc,
        recent_speed=speed,
        time_of_day=tod,
        extras={"preferred_disk_count": 4, "avg_move_efficiency": 0.7},
    )


def test_persist_reload_keeps_greedy_choice(tmp_path):
    store = setup_store(tmp_path)
    b = EpsilonGreedyBandit(DISK_PUZZLE, storage=StateStorage(store), seed=1)
    rng = np.random.default_rng(0)
    for i in range(40):
        c = ctx(int(rng.integers(1, 26)), float(rng.random()), float(rng.random()))
        action = b.catalog[int(rng.integers(0, len(b.catalog)))]
        b.update_model(c, action, float(rng.uniform(-50, 100)))
    persisted_eps = b.epsilon
    probe = ctx(7, 0.8, 0.4, tod="evening")
    b.epsilon = 0.0
    before = b.select_action(probe)

    reloaded = EpsilonGreedyBandit(DISK_PUZZLE, storage=StateStorage(setup_store(tmp_path)), seed=99)
    assert reloaded.epsilon == persisted_eps
    assert len(reloaded.history) == 40
    assert reloaded.history[0].action in reloaded.catalog
    reloaded.epsilon = 0.0
    assert reloaded.select_action(probe) == before
    for key, w in b.weights.items():
        assert np.array_equal(reloaded.weights[key], w)


def test_record_layout(tmp_path):
    store = setup_store(tmp_path)
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    b.update_model(Context(current_level=2), b.catalog[0], 42.0)

    data = json.loads(store.get(MATCHING.storage_key))
    assert set(data) == {"history", "weights", "epsilon"}
    key, vector = data["weights"][0]
    assert isinstance(key, str) and len(vector) == MATCHING.feature_dim
    assert data["history"][0]["reward"] == 42.0
    assert data["history"][0]["action"]["grid_size"] == b.catalog[0].grid_size
    assert (tmp_path / "state" / "matching_bandit_state.json").exists()


def test_corrupt_json_falls_back_to_defaults():
    store = MemoryStore()
    store.set(MATCHING.storage_key, "{not json")
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    assert b.epsilon == 0.1 and b.weights == {} and b.history == []


def test_schema_violation_falls_back_to_defaults():
    store = MemoryStore()
    store.set(MATCHING.storage_key, json.dumps({"history": [], "weights": [], "epsilon": 5}))
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    assert b.epsilon == 0.1


def test_foreign_action_record_falls_back_to_defaults():
    store = MemoryStore()
    record = {
        "history": [{"action": {"foo": 1}, "context": {"current_level": 1}, "reward": 10, "timestamp": 1}],
        "weights": [["x", [1.0, 2.0]]],
        "epsilon": 0.05,
    }
    store.set(MATCHING.storage_key, json.dumps(record))
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    assert b.epsilon == 0.1 and b.weights == {} and b.history == []


def test_malformed_context_extras_fall_back_to_defaults():
    store = MemoryStore()
    action = EpsilonGreedyBandit(MATCHING).catalog[0]
    for extras in ([1, 2], "grid", {"preferred_grid_size": "big"}):
        record = {
            "history": [{
                "action": action_to_dict(action),
                "context": {"current_level": 1, "extras": extras},
                "reward": 10,
                "timestamp": 1,
            }],
            "weights": [],
            "epsilon": 0.05,
        }
        store.set(MATCHING.storage_key, json.dumps(record))
        b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
        assert b.epsilon == 0.1 and b.history == []


def test_epsilon_below_floor_is_rejected():
    store = MemoryStore()
    store.set(MATCHING.storage_key, json.dumps({"history": [], "weights": [], "epsilon": 0.001}))
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    assert b.epsilon == 0.1


def test_saved_context_extras_are_restored():
    store = MemoryStore()
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    b.update_model(Context(current_level=3, extras={"preferred_grid_size": 6.0}), b.catalog[0], 30.0)
    again = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    assert again.history[0].context.extras == {"preferred_grid_size": 6.0}
    assert again.history[0].context.current_level == 3


def test_stale_weight_vectors_are_loaded_but_ignored():
    store = MemoryStore()
    key = EpsilonGreedyBandit(MATCHING).catalog.keys[2]
    store.set(MATCHING.storage_key, json.dumps({"history": [], "weights": [[key, [1.0, 2.0]]], "epsilon": 0.2}))
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(store))
    assert b.epsilon == 0.2
    b.epsilon = 0.0
    assert b.select_action(Context(current_level=1)) == b.catalog[0]


class BrokenStore(KeyValueStore):
    def get(self, key):
        return None

    def set(self, key, value):
        raise OSError("disk full")

    def delete(self, key):
        raise OSError("disk full")


def test_storage_failures_do_not_escape():
    b = EpsilonGreedyBandit(MATCHING, storage=StateStorage(BrokenStore()))
    b.update_model(Context(current_level=1), b.catalog[0], 60.0)
    assert len(b.history) == 1
    b.reset()
    assert b.history == []


def test_file_store_roundtrip(tmp_path):
    store = setup_store(tmp_path)
    assert store.get("k") is None
    store.set("k", "v")
    assert store.get("k") == "v"
    store.delete("k")
    assert store.get("k") is None
