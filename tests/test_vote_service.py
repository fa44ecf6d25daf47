import pytest
from sqlalchemy import func, select

from gasy_hub.core.errors import AlreadyVotedError, NotFoundError, ValidationError
from gasy_hub.db.models import AlertComment, AlertStatusChange, AlertValidation, User
from gasy_hub.services.alert_service import AlertService
from gasy_hub.services.vote_service import VoteService


@pytest.fixture
def alert(db, make_user):
    make_user("u1")
    return AlertService(db).submit(
        reason="Vol",
        description="Sac volé",
        location="Analakely",
        urgency="high",
        author_id="u1",
    )


def test_vote_scenario_from_submit_to_duplicate(db, make_user, alert):
    """u2 confirms once; the second confirm is refused and changes nothing."""
    make_user("u2")
    votes = VoteService(db)

    assert alert.status == "pending"
    assert alert.confirmed_count == 0

    updated = votes.vote(alert.id, "u2", True)
    assert updated.confirmed_count == 1

    with pytest.raises(AlreadyVotedError):
        votes.vote(alert.id, "u2", True)

    db.expire_all()
    assert votes._require_alert(alert.id).confirmed_count == 1
    assert votes.has_voted(alert.id, "u2")


def test_counters_match_ledger(db, make_user, alert):
    votes = VoteService(db)
    for i, is_confirmed in enumerate([True, False, True]):
        make_user(f"v{i}")
        votes.vote(alert.id, f"v{i}", is_confirmed)

    refreshed = votes._require_alert(alert.id)
    ledger = db.scalar(select(func.count(AlertValidation.id)).where(AlertValidation.alert_id == alert.id))
    assert refreshed.confirmed_count + refreshed.rejected_count == ledger == 3
    assert [v.user_id for v in votes.list_voters(alert.id)] == ["v0", "v1", "v2"]


def test_confirmation_threshold_transitions_once(db, make_user, alert):
    votes = VoteService(db)
    for i in range(4):
        make_user(f"c{i}")

    assert votes.vote(alert.id, "c0", True).status == "pending"
    assert votes.vote(alert.id, "c1", True).status == "pending"
    assert votes.vote(alert.id, "c2", True).status == "confirmed"
    assert votes.vote(alert.id, "c3", True).status == "confirmed"

    history = db.scalars(
        select(AlertStatusChange).where(
            AlertStatusChange.alert_id == alert.id,
            AlertStatusChange.to_status == "confirmed",
        )
    ).all()
    assert len(history) == 1
    assert history[0].actor_id == "system"
    assert history[0].from_status == "pending"


def test_rejection_threshold_marks_fake(db, make_user, alert):
    votes = VoteService(db)
    make_user("r1")
    make_user("r2")

    votes.vote(alert.id, "r1", False)
    updated = votes.vote(alert.id, "r2", False)

    assert updated.status == "fake"
    assert updated.rejected_count == 2


def test_confirmed_alert_is_not_demoted_by_rejections(db, make_user, alert):
    votes = VoteService(db, confirmation_threshold=1, rejection_threshold=2)
    for uid in ("a", "b", "c"):
        make_user(uid)

    assert votes.vote(alert.id, "a", True).status == "confirmed"
    votes.vote(alert.id, "b", False)
    updated = votes.vote(alert.id, "c", False)

    assert updated.status == "confirmed"
    assert updated.rejected_count == 2


def test_vote_comment_is_stored_with_matching_type(db, make_user, alert):
    make_user("u2")
    make_user("u3")
    votes = VoteService(db)

    votes.vote(alert.id, "u2", True, comment="  Je confirme, j'étais là  ")
    votes.vote(alert.id, "u3", False, comment="")

    comments = db.scalars(select(AlertComment).where(AlertComment.alert_id == alert.id)).all()
    assert len(comments) == 1
    assert comments[0].type == "green"
    assert comments[0].content == "Je confirme, j'étais là"


def test_vote_increments_user_validations(db, make_user, alert):
    make_user("u2")
    VoteService(db).vote(alert.id, "u2", False)

    db.expire_all()
    assert db.get(User, "u2").validations_count == 1


def test_vote_on_unknown_alert_or_user(db, make_user, alert):
    make_user("u2")
    votes = VoteService(db)

    with pytest.raises(NotFoundError):
        votes.vote("missing", "u2", True)
    with pytest.raises(NotFoundError):
        votes.vote(alert.id, "ghost", True)
    with pytest.raises(NotFoundError):
        votes.list_voters("missing")


def test_vote_on_resolved_alert_is_rejected(db, make_user, alert):
    make_user("u2")
    AlertService(db).mark_resolved(alert.id, "u1")

    with pytest.raises(ValidationError):
        VoteService(db).vote(alert.id, "u2", True)


def test_duplicate_vote_refused_by_ledger_constraint(db, make_user, alert, monkeypatch):
    """Two racing requests both pass the has_voted check; the unique ledger row stops the second."""
    make_user("u2")
    votes = VoteService(db)
    votes.vote(alert.id, "u2", True)

    monkeypatch.setattr(VoteService, "has_voted", lambda self, alert_id, user_id: False)
    with pytest.raises(AlreadyVotedError):
        votes.vote(alert.id, "u2", True)

    db.expire_all()
    assert votes._require_alert(alert.id).confirmed_count == 1
    assert db.get(User, "u2").validations_count == 1
    ledger = db.scalar(
        select(func.count(AlertValidation.id)).where(
            AlertValidation.alert_id == alert.id, AlertValidation.user_id == "u2"
        )
    )
    assert ledger == 1


def test_check_voted_requires_alert_and_user(db, make_user, alert):
    make_user("u2")
    votes = VoteService(db)

    assert votes.check_voted(alert.id, "u2") is False
    votes.vote(alert.id, "u2", True)
    assert votes.check_voted(alert.id, "u2") is True

    with pytest.raises(NotFoundError):
        votes.check_voted("missing", "u2")
    with pytest.raises(NotFoundError):
        votes.check_voted(alert.id, "ghost")
