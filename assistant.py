"""Natural-language assistant over the ledger.

Two flows share one completion client and one prompt builder:

Query flow: question -> query intent (LLM call 1) -> local query ->
final answer (LLM call 2). Chat intents and empty results stop after
the first call.

Recording flow: statement -> transaction extraction (LLM call) ->
category/account/date fallbacks -> insert with balance and usage updates.
A statement holding several transactions is split into segments first and
each segment is recorded on its own.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from db.manager import StoreError
from llm.client import CompletionClient
from llm.errors import LLMError
from llm.factory import get_completion_client
from llm.intents import (
    Operation,
    QueryIntent,
    TransactionExtraction,
    VoiceTransaction,
    parse_intent,
    start_of_day,
)
from llm.prompts.builder import PromptBuilder, PromptKind
from logger import get_logger
from models.category import Category
from models.transaction import Transaction
from tools.query import QueryResult, execute

logger = get_logger()

NO_RECORDS_REPLY = "No matching records were found."
NO_AMOUNT_REPLY = "Could not identify an amount. Try something like 'lunch 50'."
NO_CATEGORIES_REPLY = "There are no categories yet. Run 'categories seed' first."
BATCH_PREVIEW = 5
FAILED_PREVIEW = 3

RECORD_KEYWORDS = (
    "记",
    "记账",
    "花了",
    "支出",
    "买了",
    "spent",
    "paid",
    "bought",
    "record",
)
QUESTION_MARKERS = (
    "多少",
    "几",
    "吗",
    "?",
    "？",
    "how much",
    "how many",
    "what",
    "show",
    "list",
)

_SEGMENT_SEPARATORS = ("\n", "；", "。", ";")
_SEGMENT_CONNECTORS = (
    "，然后",
    "然后",
    "，再",
    "再",
    "，又",
    "又",
    "，另外",
    "另外",
    "以及",
    "还有",
    " and then ",
    " then ",
    " also ",
)
# "." and "," between digits belong to a number
_SENTENCE_BREAK = re.compile(r"(?<!\d)[.,]|[.,](?!\d)")
_AMOUNT_HINT = re.compile(r"\d|元|块|yuan|dollar|\$|¥", re.IGNORECASE)

_ACCOUNT_KEYWORDS = (
    (("微信", "wx", "wechat"), ("微信支付", "微信零钱", "微信")),
    (("支付宝", "alipay", "zhifubao"), ("支付宝",)),
    (("银行卡", "储蓄卡", "借记卡", "debit"), ("银行卡",)),
    (("信用卡", "花呗", "白条", "credit"), ("信用卡/花呗", "信用卡")),
    (("现金", "cash"), ("现金",)),
)
_OTHER_MARKERS = ("其他", "other")


def split_segments(text: str) -> List[str]:
    """Split a statement into transaction-like segments.

    Sentence punctuation and connector words ("然后", "还有", "then") become
    separators. Only segments mentioning a digit or a currency word are kept.

    This is a heuristic. It will wrongly split a single purchase described
    with a connector ("买了咖啡然后付了15") and drop segments whose amount is
    spelled out in words ("五十块" is kept, "fifty" is not).
    """
    normalized = _SENTENCE_BREAK.sub("，", text)
    for separator in _SEGMENT_SEPARATORS:
        normalized = normalized.replace(separator, "，")
    for connector in _SEGMENT_CONNECTORS:
        normalized = normalized.replace(connector, "，")

    segments = []
    for part in normalized.split("，"):
        part = part.strip()
        if part and _AMOUNT_HINT.search(part):
            segments.append(part)
    return segments


def _match_name(name: Optional[str], names: Sequence[str]) -> Optional[str]:
    """Exact name match, then case-insensitive; None if nothing matches."""
    if not name:
        return None
    name = name.strip()
    if name in names:
        return name
    lowered = name.casefold()
    for candidate in names:
        if candidate.casefold() == lowered:
            return candidate
    return None


def resolve_account_name(
    text: str, accounts: Sequence[str], suggested: Optional[str] = None
) -> Optional[str]:
    """Pick the funding account for a recorded transaction.

    Order: the suggested name if it is a real account, then payment-method
    keywords in the user's text, then an account named 现金 or Cash, then the
    first account. None only when there are no accounts.
    """
    accounts = list(accounts)
    if not accounts:
        return None

    matched = _match_name(suggested, accounts)
    if matched:
        return matched

    lowered = text.lower()
    for keywords, candidates in _ACCOUNT_KEYWORDS:
        if not any(keyword in lowered for keyword in keywords):
            continue
        for candidate in candidates:
            for name in accounts:
                if candidate.lower() in name.lower():
                    return name
        for keyword in keywords:
            for name in accounts:
                if keyword in name.lower():
                    return name

    for name in accounts:
        if name == "现金":
            return name
    for name in accounts:
        if name.lower() == "cash":
            return name
    return accounts[0]


def resolve_category(
    suggested: Optional[str], categories: Sequence[Category]
) -> Optional[Category]:
    """Pick the category for a recorded transaction.

    The suggested name if it is a real category, else an "Other" category,
    else the first category.
    """
    if not categories:
        return None

    matched = _match_name(suggested, [c.name for c in categories])
    if matched:
        return next(c for c in categories if c.name == matched)

    for category in categories:
        lowered = category.name.lower()
        if any(marker in lowered for marker in _OTHER_MARKERS):
            return category
    return categories[0]


def describe_error(error: Exception) -> str:
    """User-facing text for a failure; never a stack trace."""
    message = getattr(error, "user_message", None)
    if message:
        return message
    return "Something went wrong. Please try again."


def looks_like_record(text: str) -> bool:
    """True for statements to record, false for questions about the ledger.

    "这个月花了多少" mentions spending but asks a question, so question
    markers win over record keywords.
    """
    lowered = text.lower()
    if any(marker in lowered for marker in QUESTION_MARKERS):
        return False
    return any(keyword in lowered for keyword in RECORD_KEYWORDS)


@dataclass
class RecordOutcome:
    """Result of recording one statement or segment."""

    text: str
    transaction: Optional[Transaction] = None
    category: Optional[Category] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.transaction is not None

    def reply(self) -> str:
        if not self.ok:
            return self.error or NO_AMOUNT_REPLY
        t = self.transaction
        account = f", account {t.account_name}" if t.account_name else ""
        return (
            f"Recorded {t.amount:.2f} for '{t.title}' "
            f"in {t.category_name}{account} on {t.date:%Y-%m-%d}."
        )


@dataclass
class BatchOutcome:
    outcomes: List[RecordOutcome] = field(default_factory=list)

    @property
    def created(self) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[RecordOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def reply(self) -> str:
        created = self.created
        if len(self.outcomes) == 1:
            return self.outcomes[0].reply()
        if not created:
            return (
                "Could not find any amounts to record. Try something like "
                "'lunch 15, medicine 20, water 3'."
            )

        total = sum(o.transaction.amount for o in created)
        lines = [f"Recorded {len(created)} transactions, total {total:.2f}:"]
        for index, outcome in enumerate(created[:BATCH_PREVIEW], start=1):
            t = outcome.transaction
            lines.append(f"{index}. {t.title}  {t.amount:.2f}  ({t.category_name})")
        if len(created) > BATCH_PREVIEW:
            lines.append(f"... and {len(created) - BATCH_PREVIEW} more")

        failed = self.failed
        if failed:
            lines.append("")
            lines.append("Could not record these parts (try again with an amount):")
            lines.extend(f"- {o.text}" for o in failed[:FAILED_PREVIEW])
        return "\n".join(lines)


class Assistant:
    """Orchestrates LLM round trips and local ledger work.

    Args:
        services: Services container.
        client_factory: Returns the CompletionClient to use. Defaults to the
            active LLM configuration.
        prompt_builder: Renders prompts; defaults to the bundled templates.
        clock: Returns the current local time.
    """

    def __init__(
        self,
        services,
        client_factory: Optional[Callable[[], CompletionClient]] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.services = services
        self.client_factory = client_factory or self._active_client
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.clock = clock

    def _active_client(self) -> CompletionClient:
        llm_configs = self.services.llm_configs
        active = llm_configs.get_active()
        api_key = llm_configs.get_api_key(active) if active else None
        return get_completion_client(self.services.config, active, api_key)

    def _call(
        self, kind: PromptKind, now: datetime, client: CompletionClient, **kwargs
    ) -> str:
        prompt = self.prompt_builder.render(kind, now, **kwargs)
        logger.info(f"Calling LLM for {kind.value} (prompt v{prompt.version})")
        return client.complete(prompt.request())

    # Query flow

    def parse_query(
        self, question: str, now: datetime, client: Optional[CompletionClient] = None
    ) -> QueryIntent:
        """Turn a question into a QueryIntent with one LLM call.

        Raises:
            LLMError: Any client or decoding failure.
        """
        client = client or self.client_factory()
        content = self._call(
            PromptKind.QUERY_INTENT,
            now,
            client,
            categories=self.services.categories.names(),
            accounts=self.services.accounts.names(),
            user_text=question,
        )
        intent = parse_intent(QueryIntent, content, now)
        logger.info(
            f"Query intent: {intent.operation.value} "
            f"{intent.start_date} - {intent.end_date} "
            f"category={intent.category_name} account={intent.account_name}"
        )
        return intent

    def ask(self, question: str) -> str:
        """Answer a question about the ledger.

        Returns:
            A natural-language answer, or a user-facing error message.
        """
        now = self.clock()
        try:
            client = self.client_factory()
            intent = self.parse_query(question, now, client)

            result = execute(intent, self.services)
            if intent.operation == Operation.CHAT:
                return result.text
            if result.is_empty:
                return NO_RECORDS_REPLY

            return self._final_answer(question, result, now, client)
        except (LLMError, StoreError) as e:
            logger.error(f"Query failed: {e}")
            return describe_error(e)

    def _final_answer(
        self, question: str, result: QueryResult, now: datetime, client: CompletionClient
    ) -> str:
        try:
            answer = self._call(
                PromptKind.FINAL_ANSWER,
                now,
                client,
                user_text=question,
                data_result=result.text,
            )
        except LLMError as e:
            logger.warning(f"Final answer failed, returning raw result: {e}")
            return result.text
        return answer or result.text

    # Recording flow

    def record(
        self,
        text: str,
        client: Optional[CompletionClient] = None,
        prompt_text: Optional[str] = None,
        voice: bool = False,
    ) -> RecordOutcome:
        """Record one transaction described in free text.

        Args:
            text: The user's statement; also scanned for payment keywords.
            client: Client to reuse across segments.
            prompt_text: Text sent to the model instead of text.
            voice: Use the speech prompt, tuned for transcribed input.

        Returns:
            RecordOutcome carrying either the transaction or an error message.
        """
        now = self.clock()
        try:
            client = client or self.client_factory()
            categories = self.services.categories.find_all()
            accounts = self.services.accounts.names()

            kind = PromptKind.VOICE if voice else PromptKind.TRANSACTION
            model = VoiceTransaction if voice else TransactionExtraction
            content = self._call(
                kind,
                now,
                client,
                categories=[c.name for c in categories],
                accounts=accounts,
                user_text=prompt_text or text,
            )
            extraction = parse_intent(model, content, now)

            if extraction.amount is None or extraction.amount <= 0:
                logger.info(f"No amount found in: {text!r}")
                return RecordOutcome(text=text, error=NO_AMOUNT_REPLY)

            category = resolve_category(extraction.category_name, categories)
            if category is None:
                return RecordOutcome(text=text, error=NO_CATEGORIES_REPLY)

            account_name = resolve_account_name(
                text, accounts, suggested=extraction.account_name
            )

            date = extraction.date or now
            if date == start_of_day(now):
                # "today" keeps the current time of day
                date = now

            transaction = self.services.transactions.create(
                Transaction(
                    id=None,
                    amount=extraction.amount,
                    title=extraction.note or category.name,
                    date=date,
                    category_name=category.name,
                    account_name=account_name,
                )
            )
        except (LLMError, StoreError) as e:
            logger.error(f"Recording failed for {text!r}: {e}")
            return RecordOutcome(text=text, error=describe_error(e))

        logger.info(
            f"Recorded {transaction.amount} in {transaction.category_name} "
            f"(account: {transaction.account_name})"
        )
        return RecordOutcome(text=text, transaction=transaction, category=category)

    def record_voice(self, transcript: str) -> RecordOutcome:
        return self.record(transcript, voice=True)

    def record_many(self, text: str) -> BatchOutcome:
        """Record every transaction in a statement.

        Each segment is recorded independently, so one bad segment does not
        stop the others.
        """
        segments = split_segments(text)
        if len(segments) <= 1:
            return BatchOutcome([self.record(text)])

        try:
            client = self.client_factory()
        except LLMError as e:
            return BatchOutcome([RecordOutcome(text=text, error=describe_error(e))])

        batch = BatchOutcome()
        for segment in segments:
            batch.outcomes.append(
                self.record(segment, client=client, prompt_text=f"记一笔：{segment}")
            )
        return batch

    def handle(self, text: str) -> str:
        """Route a chat message to recording or to the query flow."""
        text = text.strip()
        if not text:
            return ""
        if looks_like_record(text):
            return self.record_many(text).reply()
        return self.ask(text)
