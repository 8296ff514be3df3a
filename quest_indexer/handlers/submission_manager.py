"""Submission lifecycle.

    CREATED -> UNDER_REVIEW -> APPROVED | REJECTED -> WINNER

Winner selection may also jump straight from CREATED, APPROVED or REJECTED
to WINNER. Reviews may flip a submission between APPROVED and REJECTED any
number of times, but once a submission is WINNER nothing demotes it.

Counters (likes, comments, quest and user submission totals, completed
quests) only move when the fact behind them is recorded for the first time,
so re-delivering an event never double counts. Reviews are overwrites: the
latest review event for a submission is the one it mirrors.
"""

from typing import Dict

from quest_indexer.entities import (
    Quest,
    QuestWinner,
    Submission,
    SubmissionComment,
    SubmissionLike,
    SubmissionReview,
    SubmissionStatus,
)
from quest_indexer.events import Event
from quest_indexer.handlers.registry import (
    SUBMISSION_MANAGER,
    get_or_create_user,
    handles,
    require,
)
from quest_indexer.ids import int_id, pair_id, timed_pair_id
from quest_indexer.stats import bump
from quest_indexer.store import EntityStore
from quest_indexer.utils import _log

STATUS_CODES: Dict[int, SubmissionStatus] = {
    0: SubmissionStatus.CREATED,
    1: SubmissionStatus.UNDER_REVIEW,
    2: SubmissionStatus.APPROVED,
    3: SubmissionStatus.REJECTED,
    4: SubmissionStatus.WINNER,
}

MAX_SCORE = 100


def apply_status(submission: Submission, status: SubmissionStatus) -> bool:
    """Move ``submission`` to ``status`` keeping its flags consistent.

    Returns False when the move would demote a winner; nothing changes then.
    """
    if submission.is_winner and status is not SubmissionStatus.WINNER:
        return False
    submission.status = status
    submission.is_winner = status is SubmissionStatus.WINNER
    submission.is_approved = status in (SubmissionStatus.APPROVED, SubmissionStatus.WINNER)
    return True


@handles(SUBMISSION_MANAGER, "SubmissionCreated")
def handle_submission_created(store: EntityStore, event: Event) -> None:
    quest = require(store, Quest, int_id(event.arg("questId")))
    submitter = get_or_create_user(store, event.addr_arg("submitter"))

    submission = Submission(
        id=int_id(event.arg("submissionId")),
        submission_id=event.int_arg("submissionId"),
        quest=quest.id,
        submitter=submitter.id,
        is_team_submission=bool(event.arg("isTeamSubmission", False)),
        created_at=event.block_timestamp,
        creation_tx_hash=event.transaction_hash,
        creation_block_number=event.block_number,
    )
    if not store.create_if_absent(submission):
        return

    quest.submission_count += 1
    store.put(quest)
    submitter.total_submissions += 1
    store.put(submitter)
    bump(store, "total_submissions")


@handles(SUBMISSION_MANAGER, "SubmissionUpdated")
def handle_submission_updated(store: EntityStore, event: Event) -> None:
    submission = require(store, Submission, int_id(event.arg("submissionId")))
    code = event.int_arg("status")
    status = STATUS_CODES.get(code)
    if status is None:
        _log(f"WARN: unknown submission status {code} for {submission.id}, ignored")
        return
    if not apply_status(submission, status):
        _log(f"WARN: submission {submission.id} is a winner, status {status.value} ignored")
        return
    submission.updated_at = event.block_timestamp
    store.put(submission)


@handles(SUBMISSION_MANAGER, "SubmissionLiked")
def handle_submission_liked(store: EntityStore, event: Event) -> None:
    submission = require(store, Submission, int_id(event.arg("submissionId")))
    user = get_or_create_user(store, event.addr_arg("user"))
    like = SubmissionLike(
        id=pair_id(submission.id, user.id),
        submission=submission.id,
        user=user.id,
        liked_at=event.block_timestamp,
        tx_hash=event.transaction_hash,
    )
    if store.create_if_absent(like):
        submission.like_count += 1
        store.put(submission)


@handles(SUBMISSION_MANAGER, "SubmissionCommented")
def handle_submission_commented(store: EntityStore, event: Event) -> None:
    submission = require(store, Submission, int_id(event.arg("submissionId")))
    commenter = get_or_create_user(store, event.addr_arg("commenter"))
    comment = SubmissionComment(
        id=timed_pair_id(submission.id, commenter.id, event.block_timestamp),
        submission=submission.id,
        commenter=commenter.id,
        commented_at=event.block_timestamp,
        tx_hash=event.transaction_hash,
    )
    if store.create_if_absent(comment):
        submission.comment_count += 1
        store.put(submission)


@handles(SUBMISSION_MANAGER, "SubmissionReviewed")
def handle_submission_reviewed(store: EntityStore, event: Event) -> None:
    submission = require(store, Submission, int_id(event.arg("submissionId")))
    reviewer = get_or_create_user(store, event.addr_arg("reviewer"))
    score = event.int_arg("score")
    approved = bool(event.arg("approved"))
    review = SubmissionReview(
        id=timed_pair_id(submission.id, reviewer.id, event.block_timestamp),
        submission=submission.id,
        reviewer=reviewer.id,
        score=score,
        approved=approved,
        reviewed_at=event.block_timestamp,
        tx_hash=event.transaction_hash,
    )
    # Same reviewer in the same block: the later log wins, as on chain.
    store.put(review)

    if 0 <= score <= MAX_SCORE:
        submission.score = score
    else:
        _log(f"WARN: review score {score} out of range for {submission.id}, score not mirrored")
    submission.reviewed_at = event.block_timestamp
    apply_status(submission, SubmissionStatus.APPROVED if approved else SubmissionStatus.REJECTED)
    store.put(submission)


@handles(SUBMISSION_MANAGER, "WinnerSelected")
def handle_winner_selected(store: EntityStore, event: Event) -> None:
    submission = require(store, Submission, int_id(event.arg("submissionId")))
    apply_status(submission, SubmissionStatus.WINNER)
    store.put(submission)

    quest_key = int_id(event.arg("questId"))
    quest = store.get(Quest, quest_key)
    if quest is None:
        _log(f"WARN: winner {submission.id} selected for unknown quest {quest_key}")
        return
    if submission.submitter not in quest.winners:
        quest.winners.append(submission.submitter)
        store.put(quest)

    # Credited once per (quest, winner), whichever event listed the winner first.
    credit = QuestWinner(
        id=pair_id(quest.id, submission.submitter),
        quest=quest.id,
        winner=submission.submitter,
        submission=submission.id,
        selected_at=event.block_timestamp,
        tx_hash=event.transaction_hash,
    )
    if store.create_if_absent(credit):
        submitter = get_or_create_user(store, submission.submitter)
        submitter.total_quests_completed += 1
        store.put(submitter)
