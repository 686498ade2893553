"""Typed intents decoded from LLM JSON replies."""

import re
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Type, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from llm.errors import DecodingError
from logger import get_logger

logger = get_logger("llm")

_RELATIVE_OFFSET = re.compile(r"^([+-])(\d+)d$")
_TODAY_WORDS = {"today", "今天"}
_NULL_WORDS = {"", "null", "none"}


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def decode_date(value, now: datetime) -> Optional[datetime]:
    """Decode a date field from an LLM reply.

    Tried in order:
        1. Relative offset such as "-7d" or "+1d": start of day of now +/- N days.
        2. "today" (or 今天): start of today.
        3. ISO-8601 date or datetime, with or without fractional seconds or a
           UTC offset: start of the calendar day as written. Offsets are dropped,
           not converted.

    Anything else decodes to None rather than raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return start_of_day(value.replace(tzinfo=None))
    if not isinstance(value, str):
        return None

    text = value.strip()

    match = _RELATIVE_OFFSET.match(text)
    if match:
        days = int(match.group(2))
        if match.group(1) == "-":
            days = -days
        return start_of_day(now) + timedelta(days=days)

    if text.lower() in _TODAY_WORDS:
        return start_of_day(now)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Undecodable date value: {value!r}")
        return None
    return start_of_day(parsed.replace(tzinfo=None))


def _clean_name(value):
    if isinstance(value, str):
        value = value.strip()
        if value.lower() in _NULL_WORDS:
            return None
    return value


class Operation(str, Enum):
    SUM = "sum"
    LIST = "list"
    COUNT = "count"
    CHAT = "chat"


class _Intent(BaseModel):
    model_config = ConfigDict(extra="ignore")


class QueryIntent(_Intent):
    """What the user wants to know about their ledger."""

    operation: Operation
    start_date: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("startDate", "start_date")
    )
    end_date: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("endDate", "end_date")
    )
    category_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("category", "category_name", "categoryName")
    )
    account_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("account", "account_name", "accountName")
    )
    chat_response: Optional[str] = Field(
        None, validation_alias=AliasChoices("chatResponse", "chat_response")
    )

    @field_validator("operation", mode="before")
    @classmethod
    def _normalize_operation(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _decode_dates(cls, value, info: ValidationInfo):
        now = (info.context or {}).get("now") or datetime.now()
        return decode_date(value, now)

    @field_validator("category_name", "account_name", mode="before")
    @classmethod
    def _clean_names(cls, value):
        return _clean_name(value)


class TransactionExtraction(_Intent):
    """A single transaction pulled out of free text."""

    amount: Optional[Decimal] = None
    category_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("category_name", "category", "categoryName")
    )
    account_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("account_name", "account", "accountName")
    )
    note: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def _decode_date(cls, value, info: ValidationInfo):
        now = (info.context or {}).get("now") or datetime.now()
        return decode_date(value, now)

    @field_validator("category_name", "account_name", "note", mode="before")
    @classmethod
    def _clean_names(cls, value):
        return _clean_name(value)


class VoiceTransaction(TransactionExtraction):
    """A transaction parsed from transcribed speech.

    Same shape as TransactionExtraction; the voice prompt names its fields
    "category" and "account", which the aliases accept.
    """


IntentT = TypeVar("IntentT", bound=_Intent)


def parse_intent(model: Type[IntentT], content: str, now: datetime) -> IntentT:
    """Decode cleaned LLM content into an intent.

    Args:
        model: Intent class to decode into.
        content: Fence-stripped message content.
        now: Reference time for relative dates.

    Returns:
        The decoded intent.

    Raises:
        DecodingError: If the content is not JSON or does not match the schema.
    """
    try:
        return model.model_validate_json(content, context={"now": now})
    except ValidationError as e:
        logger.warning(f"Could not decode {model.__name__}: {e.error_count()} error(s)")
        logger.debug(f"Undecodable content: {content!r}")
        raise DecodingError(f"Invalid {model.__name__}: {e}", cause=e) from e
