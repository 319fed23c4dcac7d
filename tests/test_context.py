from datetime import datetime

from adaptivebrain import DISK_PUZZLE, MATCHING, TONE_SEQUENCE, SessionRecord, build_context
from adaptivebrain.context import classify_user_type, streak_count


def at_hour(hour):
    return datetime(2024, 3, 5, hour, 30).timestamp() * 1000.0


def session(accuracy=0.8, speed=0.6, completed=True, start_time=0.0, **kw):
    return SessionRecord(level=2, start_time=start_time, accuracy=accuracy, speed=speed, completed=completed, **kw)


def test_empty_history_gives_neutral_context():
    c = build_context(1, [], now=at_hour(10))
    assert c.current_level == 1
    assert c.recent_accuracy == 0.5 and c.recent_speed == 0.5
    assert c.streak_count == 0
    assert c.user_type == "balanced"
    assert c.session_length_minutes == 0.0
    assert c.previous_difficulty_multiplier == 1.0
    assert c.success_rate == 0.5
    assert c.engagement_level == 0.5
    assert c.frustration_level == 0.0
    assert c.extras == {}


def test_level_is_at_least_one():
    assert build_context(0, []).current_level == 1


def test_time_of_day_buckets():
    assert build_context(1, [], now=at_hour(9)).time_of_day == "morning"
    assert build_context(1, [], now=at_hour(14)).time_of_day == "afternoon"
    assert build_context(1, [], now=at_hour(20)).time_of_day == "evening"


def test_averages_use_last_five_sessions():
    history = [session(accuracy=0.0, speed=0.0)] * 2 + [session(accuracy=0.8, speed=0.4)] * 5
    c = build_context(4, history, now=at_hour(9))
    assert abs(c.recent_accuracy - 0.8) < 1e-9
    assert abs(c.recent_speed - 0.4) < 1e-9
    assert c.user_type == "accuracy_focused"


def test_streak_stops_at_first_failure():
    history = [
        session(accuracy=0.9),
        session(accuracy=0.9, completed=False),
        session(accuracy=0.9),
        session(accuracy=0.75),
    ]
    assert streak_count(history, 0.7) == 2
    assert streak_count(history + [session(accuracy=0.7)], 0.7) == 0
    assert build_context(2, history, domain=MATCHING).streak_count == 2


def test_streak_threshold_depends_on_domain():
    history = [session(accuracy=0.65)] * 3
    assert build_context(2, history, domain=MATCHING).streak_count == 0
    assert build_context(2, history, domain=TONE_SEQUENCE).streak_count == 3


def test_user_type_margin():
    assert classify_user_type(0.9, 0.5) == "speed_focused"
    assert classify_user_type(0.5, 0.9) == "accuracy_focused"
    assert classify_user_type(0.6, 0.5) == "balanced"
    assert classify_user_type(0.5, 0.6) == "balanced"


def test_session_length_and_previous_multiplier():
    history = [session(start_time=0.0), session(start_time=60000.0, difficulty_multiplier=1.4)]
    c = build_context(3, history, now=600000.0)
    assert abs(c.session_length_minutes - 10.0) < 1e-9
    assert c.previous_difficulty_multiplier == 1.4
    assert c.success_rate == 1.0


def test_domain_extras():
    h = [session(config={"grid_size": 6})]
    assert build_context(3, h, domain=MATCHING).extras == {"preferred_grid_size": 6.0}

    tone = build_context(3, [session(config={"sequence_length": 5}, moves=4, correct_moves=3, avg_reaction_time=900.0)],
                         domain=TONE_SEQUENCE)
    assert tone.extras["preferred_sequence_length"] == 5.0
    assert abs(tone.extras["auditory_memory_strength"] - (0.5 + 0.06 - 0.01)) < 1e-9
    assert tone.extras["avg_response_time"] == 900.0

    disk = build_context(3, [session(moves=14, optimal_moves=7)], domain=DISK_PUZZLE)
    assert disk.extras["preferred_disk_count"] == 3.0
    assert disk.extras["avg_move_efficiency"] == 0.5


def test_context_features_have_domain_length():
    for domain in (MATCHING, TONE_SEQUENCE, DISK_PUZZLE):
        c = build_context(5, [session()], domain=domain)
        assert domain.featurize(c).shape == (domain.feature_dim,)
