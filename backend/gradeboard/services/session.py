"""Session state and the transitions that are allowed to change it.

All mutations go through :class:`SessionStore`. Each one runs under a single
lock (Socket.IO handlers execute on several threads) and, when it changes
something clients can see, ends by publishing the full snapshot. There is no
delta protocol: every client reconverges to the same state after each change.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from gradeboard.models import (
    Category, DisplayAddress, SessionState, Vote, VotingMode, generate_session_id,
)
from gradeboard.services.voting import ensure_can_vote, expand_submission

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self):
        return 'UNSET'


UNSET: Any = _Unset()

Publisher = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class StatusUpdate:
    """Partial host update. Fields left as ``UNSET`` are not touched.

    An explicit ``None`` is a write: it resets that field to its default.
    """
    current_subject: Any = UNSET
    is_voting_open: Any = UNSET
    current_participants: Any = UNSET
    voting_mode: Any = UNSET

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> 'StatusUpdate':
        data = data if isinstance(data, dict) else {}
        return cls(
            current_subject=data.get('currentSubject', UNSET),
            is_voting_open=data.get('isVotingOpen', UNSET),
            current_participants=data.get('currentParticipants', UNSET),
            voting_mode=data.get('votingMode', UNSET),
        )


def parse_categories(raw: Any) -> List[Category]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValueError('categories must be a list')
    categories = [c if isinstance(c, Category) else Category.from_dict(c) for c in raw]
    seen = set()
    for cat in categories:
        if cat.id in seen:
            raise ValueError(f'Duplicate category id: {cat.id}')
        seen.add(cat.id)
    return categories


def parse_participants(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError('currentParticipants must be a list')
    return [str(p) for p in value]


def parse_voting_mode(value: Any) -> VotingMode:
    if value is None:
        return VotingMode.GROUP
    try:
        return VotingMode(value)
    except ValueError:
        raise ValueError(f'Unknown voting mode: {value}')


class SessionStore:
    def __init__(self, publish: Optional[Publisher] = None, default_name: str = 'Classroom Session'):
        self.state = SessionState(name=default_name)
        self._publish = publish
        self._lock = threading.Lock()

    def _broadcast(self, snapshot: Dict[str, Any]) -> None:
        if self._publish is None:
            return
        try:
            self._publish(snapshot)
        except Exception as exc:
            logger.warning(f"[broadcast] publish failed: {exc}")

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.state.to_dict()

    def categories_and_votes(self):
        with self._lock:
            return list(self.state.categories), list(self.state.votes)

    def create_session(self, name: Any, categories: Any) -> str:
        """Start a fresh session: new id, new rubric, empty vote log.

        Current subject, participants, voting mode and the open flag carry over.
        """
        parsed = parse_categories(categories)
        with self._lock:
            state = self.state
            state.session_id = generate_session_id(previous=state.session_id)
            if name not in (None, ''):
                state.name = str(name)
            state.categories = parsed
            state.votes = []
            session_id = state.session_id
            snapshot = state.to_dict()
        logger.info(f"[session] created id={session_id} categories={len(parsed)}")
        self._broadcast(snapshot)
        return session_id

    def update_status(self, update: StatusUpdate) -> None:
        # Convert every present field first so a bad one leaves the state untouched
        changes = {}
        if update.current_subject is not UNSET:
            changes['current_subject'] = '' if update.current_subject is None else str(update.current_subject)
        if update.is_voting_open is not UNSET:
            changes['is_voting_open'] = bool(update.is_voting_open)
        if update.current_participants is not UNSET:
            changes['current_participants'] = parse_participants(update.current_participants)
        if update.voting_mode is not UNSET:
            changes['voting_mode'] = parse_voting_mode(update.voting_mode)
        with self._lock:
            for attr, value in changes.items():
                setattr(self.state, attr, value)
            snapshot = self.state.to_dict()
        self._broadcast(snapshot)

    def select_display_address(self, index: Any) -> bool:
        """Record the host's chosen display address; out-of-range is a no-op."""
        if isinstance(index, bool) or not isinstance(index, int):
            return False
        with self._lock:
            if not 0 <= index < len(self.state.available_addresses):
                return False
            self.state.selected_address_index = index
            snapshot = self.state.to_dict()
        self._broadcast(snapshot)
        return True

    def refresh_addresses(self, addresses: Sequence[DisplayAddress]) -> None:
        with self._lock:
            self.state.available_addresses = list(addresses)
            if self.state.selected_address_index >= len(self.state.available_addresses):
                self.state.selected_address_index = 0

    def submit_vote(self, device_id: str, channel_id: str, address: str, payload: Any) -> List[Vote]:
        """Check the one-ballot rule and append the expanded votes atomically.

        Raises :class:`~gradeboard.services.voting.VoteRejected` without
        touching state when voting is closed or the device already voted for
        the current subject.
        """
        with self._lock:
            ensure_can_vote(self.state, device_id)
            votes = expand_submission(
                self.state, payload, device_id=device_id, channel_id=channel_id, address=address
            )
            self.state.votes.extend(votes)
            snapshot = self.state.to_dict()
        self._broadcast(snapshot)
        return votes
