from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import random
import string


class VotingMode(str, Enum):
    GROUP = 'group'              # single group score
    MIXED = 'mixed'              # group score plus per-participant scores
    PARTICIPANTS = 'participants'


class IdType(str, Enum):
    LOCALHOST = 'LOCALHOST'
    MAC = 'MAC'
    IP = 'IP'


@dataclass(frozen=True)
class Category:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError('Each category must be an object with an id')
        raw_id = data.get('id')
        cat_id = '' if raw_id is None else str(raw_id).strip()
        if not cat_id:
            raise ValueError('Each category needs a non-empty id')
        name = data.get('name')
        return cls(id=cat_id, name=str(name) if name not in (None, '') else cat_id)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


@dataclass(frozen=True)
class Vote:
    main_subject: str
    subject: str
    scores: Dict[str, Any]
    voter_channel_id: str
    voter_address: str
    device_id: str

    def to_dict(self):
        return {
            'mainSubject': self.main_subject,
            'subject': self.subject,
            'scores': dict(self.scores),
            'voterChannelId': self.voter_channel_id,
            'voterAddress': self.voter_address,
            'deviceId': self.device_id,
        }


@dataclass(frozen=True)
class DeviceIdentity:
    device_id: str
    id_type: IdType


@dataclass(frozen=True)
class DisplayAddress:
    name: str
    address: str
    url: str

    def to_dict(self):
        return {'name': self.name, 'address': self.address, 'url': self.url}


def generate_session_id(previous: Optional[str] = None, length: int = 8) -> str:
    """Generate a short opaque session token that differs from ``previous``."""
    while True:
        code = ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))
        if code != previous:
            return code


@dataclass
class SessionState:
    """Volatile state of the single grading room."""
    name: str = 'Classroom Session'
    session_id: Optional[str] = None
    categories: List[Category] = field(default_factory=list)
    current_subject: str = ''
    current_participants: List[str] = field(default_factory=list)
    voting_mode: VotingMode = VotingMode.GROUP
    is_voting_open: bool = False
    votes: List[Vote] = field(default_factory=list)
    available_addresses: List[DisplayAddress] = field(default_factory=list)
    selected_address_index: int = 0

    def to_dict(self):
        return {
            'sessionId': self.session_id,
            'name': self.name,
            'categories': [c.to_dict() for c in self.categories],
            'currentSubject': self.current_subject,
            'currentParticipants': list(self.current_participants),
            'votingMode': self.voting_mode.value,
            'isVotingOpen': self.is_voting_open,
            'votes': [v.to_dict() for v in self.votes],
            'availableIps': [a.to_dict() for a in self.available_addresses],
            'selectedIpIndex': self.selected_address_index,
        }
