import sys

from adaptivebrain import DOMAINS, EngineConfig, FileStore, StateStorage
from adaptivebrain.simulation import run_simulation


def main():
    domain = sys.argv[1] if len(sys.argv) > 1 else "matching"
    if domain not in DOMAINS:
        raise SystemExit(f"unknown game {domain!r}; choose from {sorted(DOMAINS)}")
    cfg = EngineConfig.from_env()
    storage = StateStorage(FileStore(cfg.state_dir))
    print(f"{DOMAINS[domain].title}: simulated player, state in {cfg.state_dir}")
    summary = run_simulation(domain, rounds=30, skill=0.7, seed=None, storage=storage, config=cfg)
    for i, (lvl, r) in enumerate(zip(summary["levels"], summary["rewards"])):
        print(f"Round {i+1}: reward={r:6.1f} next_level={lvl}")
    stats = summary["stats"]
    print(f"eps={stats['epsilon']:.3f} skill={stats['skill_level']} pulls={stats['total_pulls']}")


if __name__ == "__main__":
    main()
