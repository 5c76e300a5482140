"""
Daily insight generation.

One generation runs four strictly sequential steps: fetch (three independent
reads joined together), compose the context from prior insights, invoke the
reasoning service and drain its stream, then persist a single new Insight.
Nothing is written unless every step succeeds, and collaborator errors
propagate unchanged. There are no retries.

``generate`` has no day-level guard: two calls on the same day create two
Insights. ``generate_once`` first looks for an Insight already dated today and
serializes guarded calls per owner within the running event loop; separate
processes can still race past the check.
"""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple

from budget_insights.core.errors import ExternalServiceError, require_owner
from budget_insights.db.records import RecordStoreAdapter
from budget_insights.models.base import utcnow
from budget_insights.models.budget import BudgetSettings
from budget_insights.models.insight import Insight
from budget_insights.models.transaction import Transaction
from budget_insights.utils.formatting import format_amount
from budget_insights.utils.periods import day_bounds
from budget_insights.utils.reasoning import ReasoningService, Turn

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are my personal finance advisor. Please analyze my expenses and provide:\n"
    "- Key spending patterns\n"
    "- Specific saving opportunities\n"
    "- Practical tips for better financial management\n"
    "Be concise, specific, and use bullet points. Keep it under 150 words."
)
ACKNOWLEDGEMENT = "I'll analyze your spending patterns and provide personalized recommendations."

DEFAULT_CONTEXT_LIMIT = 5


@dataclass
class _HeldLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


def compose_context(previous: Iterable[Insight], tz: Optional[tzinfo] = None) -> str:
    return "\n".join(
        f"Previous Insight ({insight.formatted_date(tz)}): {insight.insight_text}"
        for insight in previous
    )


def format_transactions(transactions: Iterable[Transaction]) -> str:
    return "\n".join(
        f"Category: {tx.category}, Amount: {tx.amount}, Title: {tx.title}"
        for tx in transactions
    )


def build_message(monthly_budget: float, transactions: Iterable[Transaction], currency: str = "USD") -> str:
    return (
        f"Monthly Budget: {format_amount(monthly_budget, currency)}\n\n"
        f"Recent Expenses:\n{format_transactions(transactions)}\n\n"
        "Based on this data, please provide your analysis and recommendations."
    )


def build_prior_turns(context: str) -> List[Turn]:
    return [
        Turn(role="user", text=f"{SYSTEM_PROMPT}\n\nPrevious Context:\n{context}"),
        Turn(role="model", text=ACKNOWLEDGEMENT),
    ]


class InsightPipeline:
    def __init__(
        self,
        records: RecordStoreAdapter,
        reasoning: ReasoningService,
        context_limit: int = DEFAULT_CONTEXT_LIMIT,
        timeout: Optional[float] = None,
        currency: str = "USD",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.records = records
        self.reasoning = reasoning
        self.context_limit = context_limit
        self.timeout = timeout
        self.currency = currency
        self._clock = clock
        self._locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, _HeldLock]]" = (
            weakref.WeakKeyDictionary()
        )

    @property
    def tz(self) -> tzinfo:
        return self.records.tz

    async def generate(self, owner_id: str, timeout: Optional[float] = None) -> Insight:
        owner_id = require_owner(owner_id)
        now = self._clock()
        logger.info(f"Generating daily insight for owner {owner_id}")

        transactions, budget, previous = await self._fetch(owner_id, now)
        logger.info(
            f"Fetched {len(transactions)} expenses and {len(previous)} previous insights for owner {owner_id}"
        )

        context = compose_context(previous, self.tz)
        text = await self._invoke(context, budget, transactions, timeout if timeout is not None else self.timeout)

        insight = Insight(
            owner_id=owner_id,
            date=now,
            insight_text=text,
            analyzed_transaction_ids=[tx.id for tx in transactions if tx.id],
            previous_context_text=context,
        )
        saved = await asyncio.to_thread(self.records.create_insight, insight)
        logger.info(f"Saved insight {saved.id} for owner {owner_id}")
        return saved

    async def generate_once(self, owner_id: str, timeout: Optional[float] = None) -> Tuple[Insight, bool]:
        """Returns ``(insight, created)``; an Insight already dated today is returned as is."""
        owner_id = require_owner(owner_id)
        async with self._owner_lock(owner_id):
            existing = await self.todays_insight(owner_id)
            if existing is not None:
                logger.info(f"Owner {owner_id} already has insight {existing.id} today, skipping")
                return existing, False
            return await self.generate(owner_id, timeout), True

    async def todays_insight(self, owner_id: str) -> Optional[Insight]:
        start, end = day_bounds(self._clock(), self.tz)
        found = await asyncio.to_thread(self.records.insights_between, owner_id, start, end)
        return found[0] if found else None

    async def fetch_recent(self, owner_id: str, limit: int = 10) -> List[Insight]:
        return await asyncio.to_thread(self.records.recent_insights, owner_id, limit)

    async def _fetch(
        self, owner_id: str, now: datetime
    ) -> Tuple[List[Transaction], BudgetSettings, List[Insight]]:
        return await asyncio.gather(
            asyncio.to_thread(self.records.transactions_for_day, owner_id, now),
            asyncio.to_thread(self.records.current_budget_settings, owner_id),
            asyncio.to_thread(self.records.recent_insights, owner_id, self.context_limit),
        )

    async def _invoke(
        self,
        context: str,
        budget: BudgetSettings,
        transactions: List[Transaction],
        timeout: Optional[float],
    ) -> str:
        message = build_message(budget.monthly_budget, transactions, self.currency)
        try:
            text = await asyncio.wait_for(self._stream_text(context, message), timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Reasoning service timed out after {timeout}s")
            raise ExternalServiceError(f"Reasoning service timed out after {timeout}s") from e
        if not text.strip():
            raise ExternalServiceError("Reasoning service returned an empty response")
        return text

    async def _stream_text(self, context: str, message: str) -> str:
        session = self.reasoning.start_session(SYSTEM_PROMPT, build_prior_turns(context))
        stream = await session.send_message(message)
        chunks: List[str] = []
        finished = False
        try:
            while True:
                chunk = await stream.next()
                if chunk is None:
                    finished = True
                    break
                chunks.append(chunk)
        finally:
            if not finished:
                await stream.cancel()
        return "".join(chunks)

    @asynccontextmanager
    async def _owner_lock(self, owner_id: str) -> AsyncIterator[None]:
        locks = self._locks.setdefault(asyncio.get_running_loop(), {})
        held = locks.get(owner_id)
        if held is None:
            held = locks[owner_id] = _HeldLock()
        held.users += 1
        try:
            async with held.lock:
                yield
        finally:
            held.users -= 1
            # dropped once released with nobody waiting
            if held.users == 0 and locks.get(owner_id) is held:
                del locks[owner_id]
