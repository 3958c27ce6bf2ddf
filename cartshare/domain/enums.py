# cartshare/domain/enums.py
import enum


class SharedCartStatus(str, enum.Enum):
    pending = "pending"
    contacted = "contacted"
    converted = "converted"
    expired = "expired"


TERMINAL_STATUSES = frozenset({SharedCartStatus.converted, SharedCartStatus.expired})
