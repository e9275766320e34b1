"""
Data models for channel entries
Using Pydantic for validation and serialization

ARCHITECTURE:
- Entry carries fixed attributes (title, dates, status, author) plus a
  private mapping of raw custom-field columns (field_id_N, field_dt_N, field_ft_N)
- Hydrators turn raw columns into typed custom-field values keyed by field name
- Entries are read-only: save() and delete() always raise
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from errors import UnsupportedOperationError

# Raw storage columns, never exposed to consumers
RAW_COLUMN_PATTERN = re.compile(r"^field_(id|dt|ft)_")

# Fixed attributes stored as unix time
EPOCH_DATE_ATTRIBUTES = (
    "entry_date",
    "expiration_date",
    "comment_expiration_date",
    "recent_comment_date",
)

# Attributes never included in the external representation
HIDDEN_ATTRIBUTES = {"channel", "site_id", "forum_topic_id", "ip_address", "versioning_enabled"}

_EDIT_DATE_FORMAT = "%Y%m%d%H%M%S"


def from_timestamp(value: Any) -> Optional[datetime]:
    """Convert a unix timestamp to an aware UTC datetime; 0 and empty mean unset."""
    if value is None or value == "" or value == 0 or value == "0":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def to_utc_z(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with a literal trailing Z. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def serialize_value(value: Any) -> Any:
    """Recursively convert a value into its external representation."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, "to_dict"):
        return serialize_value(value.to_dict())
    if isinstance(value, BaseModel):
        return serialize_value(value.model_dump())
    if isinstance(value, Mapping):
        return {
            key: serialize_value(item)
            for key, item in value.items()
            if not RAW_COLUMN_PATTERN.match(str(key))
        }
    if isinstance(value, (list, tuple, set)):
        return [serialize_value(item) for item in value]
    return str(value)


def _yes_no(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("y", "yes", "1", "true")
    return bool(value)


# ============================================================================
# Registry models
# ============================================================================

class Channel(BaseModel):
    """A content-type definition; its field group decides which custom fields entries carry"""
    model_config = ConfigDict(from_attributes=True)

    channel_id: int
    site_id: int = 1
    channel_name: str
    channel_title: Optional[str] = None
    field_group: Optional[int] = None


class ChannelField(BaseModel):
    """A custom field definition belonging to one field group"""
    model_config = ConfigDict(from_attributes=True)

    field_id: int
    site_id: int = 1
    group_id: int
    field_name: str
    field_label: Optional[str] = None
    field_type: str = "text"
    field_order: int = 0


class Category(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cat_id: int
    group_id: int
    cat_name: str
    cat_url_title: Optional[str] = None


# ============================================================================
# Hydrated value types
# ============================================================================

class File(BaseModel):
    """A file custom-field value resolved against its upload destination"""
    upload_dir_id: Optional[int] = None
    filename: str
    url: Optional[str] = None
    server_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def __str__(self) -> str:
        return self.url or self.filename


# ============================================================================
# Entry
# ============================================================================

class Entry(BaseModel):
    """A single content record: fixed attributes plus hydrated custom fields"""
    model_config = ConfigDict(from_attributes=True)

    entry_id: int
    site_id: int = 1
    channel_id: int
    author_id: int = 0
    forum_topic_id: Optional[int] = None
    ip_address: Optional[str] = None
    title: str = ""
    url_title: str = ""
    status: str = "open"
    versioning_enabled: Optional[str] = None
    allow_comments: bool = False
    sticky: bool = False
    entry_date: Optional[datetime] = None
    edit_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    comment_expiration_date: Optional[datetime] = None
    recent_comment_date: Optional[datetime] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    comment_total: int = 0

    channel: Optional[Channel] = Field(default=None, exclude=True)

    _raw_columns: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _custom_fields: Dict[str, Any] = PrivateAttr(default_factory=dict)
    _hydrated: bool = PrivateAttr(default=False)

    @field_validator(*EPOCH_DATE_ATTRIBUTES, mode='before')
    @classmethod
    def convert_timestamp(cls, v):
        return from_timestamp(v)

    @field_validator('edit_date', mode='before')
    @classmethod
    def convert_edit_date(cls, v):
        """edit_date is stored as YYYYMMDDhhmmss in UTC"""
        if v is None or v == "" or v == 0:
            return None
        if isinstance(v, datetime):
            return v
        return datetime.strptime(str(v), _EDIT_DATE_FORMAT).replace(tzinfo=timezone.utc)

    @field_validator('sticky', 'allow_comments', mode='before')
    @classmethod
    def convert_flag(cls, v):
        return _yes_no(v)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Entry":
        """Build an Entry from a joined channel_titles/channel_data row"""
        data = dict(row)
        raw = {key: value for key, value in data.items() if RAW_COLUMN_PATTERN.match(key)}
        attributes = {key: value for key, value in data.items() if key in cls.model_fields}
        entry = cls(**attributes)
        entry._raw_columns = raw
        return entry

    # ------------------------------------------------------------------
    # Custom fields
    # ------------------------------------------------------------------

    def raw_value(self, field_id: int) -> Any:
        """Raw stored value of a custom field"""
        return self._raw_columns.get(f"field_id_{field_id}")

    def raw_format(self, field_id: int) -> Optional[str]:
        """Stored display type (field_ft_N) of a custom field"""
        return self._raw_columns.get(f"field_ft_{field_id}")

    def set_custom_field(self, name: str, value: Any) -> None:
        if self._hydrated:
            raise RuntimeError(f"Entry {self.entry_id} is already hydrated")
        self._custom_fields[name] = value

    def mark_hydrated(self) -> None:
        self._hydrated = True

    @property
    def is_hydrated(self) -> bool:
        return self._hydrated

    @property
    def custom_fields(self) -> Mapping[str, Any]:
        return MappingProxyType(self._custom_fields)

    def get(self, name: str, default: Any = None) -> Any:
        return self._custom_fields.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self._custom_fields[name]

    def __contains__(self, name: str) -> bool:
        return name in self._custom_fields

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def save(self, **options) -> None:
        raise UnsupportedOperationError("save")

    def delete(self) -> None:
        raise UnsupportedOperationError("delete")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        External representation: fixed attributes, custom fields keyed by
        field name, UTC 'Z' timestamps, no raw storage columns.
        """
        data = self.model_dump(exclude=HIDDEN_ATTRIBUTES)
        data.update(self._custom_fields)
        return serialize_value(data)
