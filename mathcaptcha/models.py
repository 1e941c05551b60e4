import uuid
import base64
from dataclasses import dataclass
from typing import Optional

from .errors import FailureReason


@dataclass(frozen=True)
class Challenge:
    id: uuid.UUID
    number1: int
    number2: int
    text: str
    result: int
    image_bytes: bytes

    @property
    def key(self) -> str:
        """Store key: the identifier as 32 lowercase hex digits."""
        return self.id.hex

    def to_dict(self):
        return {
            'id': self.id.hex,
            'number1': self.number1,
            'number2': self.number2,
            'text': self.text,
            'result': self.result,
            'image': base64.b64encode(self.image_bytes).decode('ascii'),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=uuid.UUID(hex=data['id']),
            number1=data['number1'],
            number2=data['number2'],
            text=data['text'],
            result=data['result'],
            image_bytes=base64.b64decode(data['image']),
        )

    def public_dict(self):
        # Never includes the expected result
        return {'id': self.id.hex, 'image': base64.b64encode(self.image_bytes).decode('ascii')}


@dataclass(frozen=True)
class ValidationResult:
    success: bool
    reason: Optional[FailureReason] = None

    @property
    def message_key(self):
        return self.reason.message_key if self.reason else None

    def __bool__(self):
        return self.success


VALID = ValidationResult(True)
