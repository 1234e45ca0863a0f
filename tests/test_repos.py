from datetime import datetime, timedelta

from StudyCore.core.clock import local_now
from StudyCore.core.models import WASTED_SUBJECT_ID, GoalType, SessionType, StudyGoal, StudySession, Subject, Topic
from StudyCore.repos import goal_repo, session_repo, subject_repo

USER = "tester"


def make_session(subject_id, start, duration, type=SessionType.FOCUS, topic_id=None):
    return StudySession(subject_id=subject_id, topic_id=topic_id, start_time=start,
                        end_time=start + timedelta(seconds=duration), duration=duration,
                        tags=["exam"], type=type)


def test_subject_with_topics_round_trip(db):
    subject = Subject(name="Math", topics=[Topic(name="Algebra"), Topic(name="Calculus", progress=30)])
    subject_repo.create_subject(USER, subject)
    loaded = subject_repo.list_subjects(USER)
    assert loaded == [subject]
    assert subject_repo.list_subjects("someone-else") == []


def test_append_and_fold_is_atomic_and_idempotent(db):
    topic = Topic(name="Algebra")
    subject = Subject(name="Math", topics=[topic])
    subject_repo.create_subject(USER, subject)
    session = make_session(subject.id, datetime(2026, 10, 14, 9), 300, topic_id=topic.id)
    assert session_repo.append_and_fold(USER, session) is True
    assert session_repo.append_and_fold(USER, session) is False
    stored = subject_repo.list_subjects(USER)[0]
    assert stored.total_time == 300
    assert stored.topics[0].total_time == 300
    assert session_repo.get_session(USER, session.id) == session


def test_wasted_session_is_not_folded(db):
    subject = Subject(name="Math")
    subject_repo.create_subject(USER, subject)
    session = make_session(WASTED_SUBJECT_ID, datetime(2026, 10, 14, 9), 300, SessionType.WASTED)
    session_repo.append_and_fold(USER, session, fold=False)
    assert subject_repo.list_subjects(USER)[0].total_time == 0


def test_list_sessions_window_newest_first(db):
    base = datetime(2026, 10, 14, 9)
    sessions = [make_session("a", base + timedelta(hours=h), 60) for h in range(4)]
    for s in sessions:
        session_repo.append_and_fold(USER, s, fold=False)
    listed = session_repo.list_sessions(USER, base + timedelta(hours=1), base + timedelta(hours=3))
    assert [s.id for s in listed] == [sessions[2].id, sessions[1].id]
    assert len(session_repo.list_sessions(USER)) == 4


def test_replace_all_sessions(db):
    old = make_session("a", datetime(2026, 10, 1, 9), 60)
    session_repo.append_and_fold(USER, old, fold=False)
    new = make_session("b", datetime(2026, 10, 2, 9), 90)
    session_repo.replace_all(USER, [new])
    assert session_repo.list_sessions(USER) == [new]


def test_summary_queries(db):
    now = local_now()
    session_repo.append_and_fold(USER, make_session("a", now, 1800), fold=False)
    session_repo.append_and_fold(USER, make_session("a", now - timedelta(days=1), 1800), fold=False)
    session_repo.append_and_fold(USER, make_session(WASTED_SUBJECT_ID, now, 600, SessionType.WASTED), fold=False)
    assert session_repo.today_total_seconds(USER) == 1800
    assert session_repo.get_total_days_studied(USER) == 2
    assert session_repo.get_total_hours_studied(USER) == 1.0


def test_update_and_delete_subject(db):
    subject = Subject(name="Math", topics=[Topic(name="Algebra")])
    subject_repo.create_subject(USER, subject)
    subject_repo.update_subject(USER, subject.id, name="Maths", goal_time=600)
    subject_repo.update_topic(USER, subject.topics[0].id, progress=75)
    loaded = subject_repo.list_subjects(USER)[0]
    assert (loaded.name, loaded.goal_time, loaded.topics[0].progress) == ("Maths", 600, 75)
    subject_repo.delete_subject(USER, subject.id)
    assert subject_repo.list_subjects(USER) == []


def test_goal_crud(db):
    goal = StudyGoal(type=GoalType.DAILY, target=1500)
    goal_repo.create_goal(USER, goal)
    goal_repo.update_goal(USER, goal.id, type=GoalType.WEEKLY, target=9000, current=100)
    loaded = goal_repo.list_goals(USER)
    assert [(g.type, g.target, g.current) for g in loaded] == [(GoalType.WEEKLY, 9000, 100)]
    goal_repo.replace_all(USER, [StudyGoal(type=GoalType.MONTHLY, target=36000, subject_id="a")])
    assert [g.type for g in goal_repo.list_goals(USER)] == [GoalType.MONTHLY]
    goal_repo.delete_goal(USER, goal_repo.list_goals(USER)[0].id)
    assert goal_repo.list_goals(USER) == []
