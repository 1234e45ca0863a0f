from datetime import date, datetime, timedelta

import pytest

from StudyCore.core.models import WASTED_SUBJECT_ID, GoalType, SessionType, StudyGoal, StudySession, Subject, Topic
from StudyCore.services import aggregation

TODAY = date(2026, 10, 14)  # Wednesday


def at(day_offset, hour=10, minute=0):
    return datetime.combine(TODAY + timedelta(days=day_offset), datetime.min.time()).replace(hour=hour, minute=minute)


def session(subject_id, day_offset, duration, type=SessionType.FOCUS, topic_id=None, hour=10):
    return StudySession(subject_id=subject_id, topic_id=topic_id, start_time=at(day_offset, hour),
                        duration=duration, type=type)


class TestPeriods:
    def test_day(self):
        assert aggregation.period_bounds(GoalType.DAILY, TODAY) == (at(0, 0), at(1, 0))

    def test_week_starts_sunday_by_default(self):
        start, end = aggregation.period_bounds(GoalType.WEEKLY, TODAY)
        assert start == datetime(2026, 10, 11)
        assert end == datetime(2026, 10, 18)

    def test_week_starting_monday(self):
        start, _ = aggregation.period_bounds(GoalType.WEEKLY, TODAY, week_start=0)
        assert start == datetime(2026, 10, 12)

    def test_month_rolls_over_year(self):
        assert aggregation.period_bounds(GoalType.MONTHLY, date(2026, 12, 31)) == (
            datetime(2026, 12, 1), datetime(2027, 1, 1))

    def test_totals_respect_half_open_window(self):
        sessions = [session("a", 0, 100, hour=0), session("a", 1, 50, hour=0)]
        start, end = aggregation.period_bounds(GoalType.DAILY, TODAY)
        assert aggregation.total_for_period(sessions, start, end) == 100

    def test_study_and_wasted_split(self):
        sessions = [
            session("a", 0, 100),
            session("a", 0, 40, SessionType.MANUAL),
            session(WASTED_SUBJECT_ID, 0, 30, SessionType.WASTED),
        ]
        start, end = aggregation.period_bounds(GoalType.DAILY, TODAY)
        assert aggregation.study_for_period(sessions, start, end) == 140
        assert aggregation.wasted_for_period(sessions, start, end) == 30
        assert aggregation.total_for_period(sessions, start, end, exclude_type=SessionType.MANUAL) == 130


class TestStreak:
    def test_empty_log(self):
        assert aggregation.streak([], TODAY) == 0

    def test_single_session_today(self):
        assert aggregation.streak([session("a", 0, 60)], TODAY) == 1

    def test_three_consecutive_days(self):
        sessions = [session("a", 0, 60), session("a", -1, 60), session("a", -2, 60)]
        assert aggregation.streak(sessions, TODAY) == 3

    def test_gap_breaks_chain(self):
        sessions = [session("a", 0, 60), session("a", -1, 60), session("a", -3, 60), session("a", -4, 60)]
        assert aggregation.streak(sessions, TODAY) == 2

    def test_no_activity_today_is_zero(self):
        sessions = [session("a", -1, 60), session("a", -2, 60)]
        assert aggregation.streak(sessions, TODAY) == 0

    def test_active_session_counts_for_today(self):
        sessions = [session("a", -1, 60), session("a", -2, 60)]
        assert aggregation.streak(sessions, TODAY, active_counts=True) == 3

    def test_wasted_days_do_not_count(self):
        sessions = [session(WASTED_SUBJECT_ID, 0, 60, SessionType.WASTED), session("a", -1, 60)]
        assert aggregation.streak(sessions, TODAY) == 0

    def test_several_sessions_same_day(self):
        sessions = [session("a", 0, 60, hour=8), session("b", 0, 60, hour=20), session("a", -1, 5)]
        assert aggregation.streak(sessions, TODAY) == 2


class TestGoalProgress:
    def test_clamps_at_100(self):
        goal = StudyGoal(type=GoalType.DAILY, target=1500)
        result = aggregation.goal_progress(goal, [session("a", 0, 2000)], TODAY)
        assert result.current == 2000
        assert result.percent == 100

    def test_partial_progress_with_subject_filter(self):
        goal = StudyGoal(type=GoalType.DAILY, target=1000, subject_id="a")
        sessions = [session("a", 0, 250), session("b", 0, 500), session(WASTED_SUBJECT_ID, 0, 100, SessionType.WASTED)]
        result = aggregation.goal_progress(goal, sessions, TODAY)
        assert result.current == 250
        assert result.percent == pytest.approx(25.0)

    def test_weekly_window(self):
        goal = StudyGoal(type=GoalType.WEEKLY, target=3600)
        # Sunday counts, last Saturday does not
        sessions = [session("a", -3, 600), session("a", -4, 900), session("a", 0, 600)]
        assert aggregation.goal_progress(goal, sessions, TODAY).current == 1200

    def test_live_elapsed_counts_when_active_qualifies(self):
        goal = StudyGoal(type=GoalType.DAILY, target=1000, subject_id="a")
        active = {"subject_id": "a", "type": SessionType.FOCUS, "start_time": at(0, 9)}
        assert aggregation.goal_progress(goal, [], TODAY, active=active, active_elapsed=300).current == 300
        other = dict(active, subject_id="b")
        assert aggregation.goal_progress(goal, [], TODAY, active=other, active_elapsed=300).current == 0
        wasted = dict(active, type=SessionType.WASTED)
        assert aggregation.goal_progress(goal, [], TODAY, active=wasted, active_elapsed=300).current == 0

    def test_non_positive_target_reports_zero(self):
        goal = StudyGoal.model_construct(id="g", type=GoalType.DAILY, target=0, current=0, subject_id=None)
        assert aggregation.goal_progress(goal, [session("a", 0, 100)], TODAY).percent == 0


def test_subject_breakdown():
    subjects = [Subject(id="a", name="A"), Subject(id="b", name="B")]
    sessions = [session("a", 0, 100), session("a", -1, 300), session(WASTED_SUBJECT_ID, 0, 50, SessionType.WASTED)]
    rows = {r.subject_id: r for r in aggregation.subject_breakdown(sessions, subjects)}
    assert (rows["a"].total, rows["a"].count, rows["a"].average) == (400, 2, 200)
    assert (rows["b"].total, rows["b"].count, rows["b"].average) == (0, 0, 0)


def test_most_studied_subject():
    assert aggregation.most_studied_subject([]) is None
    first = Subject(name="first", total_time=500)
    second = Subject(name="second", total_time=500)
    small = Subject(name="small", total_time=10)
    assert aggregation.most_studied_subject([small, first, second]) is first


def test_daily_series_and_type_distribution():
    sessions = [
        session("a", 0, 120),
        session("a", -2, 60, SessionType.BREAK),
        session(WASTED_SUBJECT_ID, 0, 30, SessionType.WASTED),
    ]
    series = aggregation.daily_series(sessions, TODAY)
    assert len(series) == 7
    assert series[-1] == aggregation.DayTotals(TODAY, 120, 30, 1)
    assert series[-3].study == 60
    assert series[0].day == TODAY - timedelta(days=6)
    assert aggregation.type_distribution(sessions) == {
        SessionType.FOCUS: 1, SessionType.BREAK: 1, SessionType.WASTED: 1}


def test_overview_counts_study_sessions_only():
    subjects = [Subject(id="a", name="A", total_time=300)]
    sessions = [session("a", 0, 100), session("a", 0, 200), session(WASTED_SUBJECT_ID, 0, 50, SessionType.WASTED)]
    result = aggregation.overview(sessions, subjects)
    assert result.total_time == 300
    assert result.total_sessions == 2
    assert result.average_session == 150
    assert result.top_subject is subjects[0]


def test_recompute_totals():
    subject = Subject(id="a", name="A", topics=[Topic(id="t1", name="T1"), Topic(id="t2", name="T2")])
    sessions = [
        session("a", 0, 100, topic_id="t1"),
        session("a", 0, 50),
        session("gone", 0, 999),
        session(WASTED_SUBJECT_ID, 0, 30, SessionType.WASTED),
    ]
    assert aggregation.recompute_totals(sessions, [subject]) == {"a": (150, {"t1": 100, "t2": 0})}


def test_pomodoro_progress():
    assert aggregation.pomodoro_progress(750, False) == (50.0, False)
    assert aggregation.pomodoro_progress(300, True) == (100.0, True)
    assert aggregation.pomodoro_progress(10, False, focus_len=0) == (0.0, False)


def test_scenario_from_log():
    a = Subject(id="A", name="A", goal_time=3600)
    b = Subject(id="B", name="B")
    sessions = [
        session("A", -1, 1800),
        session("A", 0, 900),
        session("B", 0, 600, SessionType.MANUAL),
        session(WASTED_SUBJECT_ID, 0, 300, SessionType.WASTED),
    ]
    totals = aggregation.recompute_totals(sessions, [a, b])
    assert totals["A"][0] == 2700
    assert totals["B"][0] == 600
    start, end = aggregation.period_bounds(GoalType.DAILY, TODAY)
    assert aggregation.study_for_period(sessions, start, end) == 1500
    assert aggregation.wasted_for_period(sessions, start, end) == 300
    assert aggregation.streak(sessions, TODAY) == 2
