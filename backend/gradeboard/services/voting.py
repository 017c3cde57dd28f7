from typing import Any, Dict, List

from gradeboard.models import SessionState, Vote, VotingMode


class VoteRejected(Exception):
    """A submission that was refused without changing the session."""


class VotingClosedError(VoteRejected):
    def __init__(self, message='Voting is currently closed.'):
        super().__init__(message)


class DuplicateVoteError(VoteRejected):
    def __init__(self, message='You have already voted for this subject!'):
        super().__init__(message)


def has_voted(state: SessionState, device_id: str) -> bool:
    # Keyed on the main subject so a device cannot vote again under another participant label
    return any(
        v.main_subject == state.current_subject and v.device_id == device_id
        for v in state.votes
    )


def ensure_can_vote(state: SessionState, device_id: str) -> None:
    if not state.is_voting_open:
        raise VotingClosedError()
    if has_voted(state, device_id):
        raise DuplicateVoteError()


def display_subject(state: SessionState, item: Dict[str, Any]) -> str:
    subject = state.current_subject
    item_type = item.get('type')
    if item_type == 'group':
        if state.voting_mode == VotingMode.MIXED:
            return f"{subject} (Group)"
        return subject
    if item_type == 'participant':
        return f"{subject} - {item.get('name') or ''}"
    return subject


def expand_submission(state: SessionState, payload: Any, *, device_id: str,
                      channel_id: str, address: str) -> List[Vote]:
    """Turn a ``{items: [...]}`` submission into one Vote per item.

    Scores are stored as sent; missing or non-numeric values count as 0 only
    when results are aggregated.
    """
    items = (payload or {}).get('items') if isinstance(payload, dict) else None
    votes = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        scores = item.get('scores')
        votes.append(Vote(
            main_subject=state.current_subject,
            subject=display_subject(state, item),
            scores=dict(scores) if isinstance(scores, dict) else {},
            voter_channel_id=channel_id,
            voter_address=address,
            device_id=device_id,
        ))
    return votes
