"""Render LLM prompts for the assistant's call sites.

Rendering is pure: the same now, category names and account names always
give byte-identical prompts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Sequence

from dateutil.relativedelta import relativedelta

from llm.client import CompletionRequest
from llm.intents import start_of_day
from llm.prompts.loader import PromptManager

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"
DAY_FORMAT = "%Y-%m-%d"

_OTHER_MARKERS = ("其他", "other")
_CASH_MARKERS = ("现金", "cash")


class PromptKind(str, Enum):
    TRANSACTION = "transaction"
    VOICE = "voice"
    QUERY_INTENT = "query_intent"
    FINAL_ANSWER = "final_answer"


@dataclass(frozen=True)
class DateAnchors:
    """Calendar anchors relative to one moment, in local time."""

    now: datetime
    today_start: datetime
    yesterday_start: datetime
    yesterday_end: datetime
    week_start: datetime
    month_start: datetime
    last_month_start: datetime
    last_month_end: datetime
    seven_days_ago: datetime
    thirty_days_ago: datetime

    @classmethod
    def from_now(cls, now: datetime) -> "DateAnchors":
        today_start = start_of_day(now)
        month_start = today_start.replace(day=1)
        return cls(
            now=now.replace(microsecond=0),
            today_start=today_start,
            yesterday_start=today_start - timedelta(days=1),
            yesterday_end=today_start - timedelta(seconds=1),
            # Monday-anchored week
            week_start=today_start - timedelta(days=now.weekday()),
            month_start=month_start,
            last_month_start=month_start - relativedelta(months=1),
            last_month_end=month_start - timedelta(seconds=1),
            seven_days_ago=today_start - timedelta(days=7),
            thirty_days_ago=today_start - timedelta(days=30),
        )

    def as_variables(self) -> Dict[str, str]:
        variables = {
            name: getattr(self, name).strftime(ISO_FORMAT)
            for name in self.__dataclass_fields__
        }
        variables["today"] = self.today_start.strftime(DAY_FORMAT)
        variables["yesterday"] = self.yesterday_start.strftime(DAY_FORMAT)
        return variables


def _first_containing(names: Sequence[str], markers) -> Optional[str]:
    for name in names:
        lowered = name.lower()
        if any(marker in lowered for marker in markers):
            return name
    return None


def category_fallback(categories: Sequence[str]) -> str:
    """Instruction for when no category matches: use Other if there is one."""
    other = _first_containing(categories, _OTHER_MARKERS)
    if other:
        return f'use "{other}"'
    return "return null"


def default_account(accounts: Sequence[str]) -> Optional[str]:
    """The cash account if there is one, else the first account."""
    cash = _first_containing(accounts, _CASH_MARKERS)
    if cash:
        return cash
    return accounts[0] if accounts else None


@dataclass
class RenderedPrompt:
    kind: PromptKind
    version: str
    system_prompt: str
    user_prompt: str
    parameters: dict

    def request(self) -> CompletionRequest:
        return CompletionRequest(
            system_prompt=self.system_prompt,
            user_prompt=self.user_prompt,
            temperature=float(self.parameters.get("temperature", 0.3)),
            max_tokens=self.parameters.get("max_tokens"),
            json_response=self.parameters.get("response_format") == "json_object",
        )


class PromptBuilder:
    """Renders the YAML prompt templates with date anchors and ledger names."""

    def __init__(self, prompt_manager: Optional[PromptManager] = None):
        self.prompt_manager = prompt_manager or PromptManager()

    def render(
        self,
        kind: PromptKind,
        now: datetime,
        categories: Sequence[str] = (),
        accounts: Sequence[str] = (),
        user_text: str = "",
        data_result: str = "",
    ) -> RenderedPrompt:
        """Render one prompt kind.

        Args:
            kind: Which template to render.
            now: Reference time for every date anchor.
            categories: Category names the model may choose from.
            accounts: Account names the model may choose from.
            user_text: The user's input, used as the user message.
            data_result: Local query output, used by the final answer prompt.

        Returns:
            RenderedPrompt holding both messages and the sampling parameters.
        """
        categories = list(categories)
        accounts = list(accounts)

        variables = DateAnchors.from_now(now).as_variables()
        variables.update(
            {
                "categories": ", ".join(categories),
                "accounts": ", ".join(accounts),
                "category_fallback": category_fallback(categories),
                "default_account": default_account(accounts) or "null",
                "example_category": categories[0] if categories else "null",
                "user_text": user_text,
                "data_result": data_result,
            }
        )

        rendered = self.prompt_manager.render_prompt(PromptKind(kind).value, variables)
        return RenderedPrompt(
            kind=PromptKind(kind),
            version=rendered["version"],
            system_prompt=rendered["system_prompt"],
            user_prompt=rendered["user_prompt"],
            parameters=rendered["parameters"],
        )
