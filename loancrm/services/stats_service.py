import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loancrm.core.errors import StoreError
from loancrm.database.predicates import Range
from loancrm.schemas.customer_schema import CustomerStatusEnum
from loancrm.schemas.stats_schema import CustomerStats, MonthlyStats
from loancrm.services.filter_builder import CREATED_AT, LOAN_AMOUNT, month_window

logger = logging.getLogger(__name__)


def _status_counter(status: CustomerStatusEnum) -> Dict[str, Any]:
    return {"$sum": {"$cond": [{"$eq": ["$status", status.value]}, 1, 0]}}


def _status_accumulators() -> Dict[str, Any]:
    return {
        "approved": _status_counter(CustomerStatusEnum.approved),
        "pending": _status_counter(CustomerStatusEnum.pending),
        "rejected": _status_counter(CustomerStatusEnum.rejected),
        "loanTotal": {"$sum": f"${LOAN_AMOUNT}"},
        "count": {"$sum": 1},
    }


def overall_pipeline() -> List[Dict[str, Any]]:
    return [{"$group": {"_id": None, **_status_accumulators()}}]


def monthwise_pipeline(year: int) -> List[Dict[str, Any]]:
    start, end = month_window(year)
    return [
        {"$match": Range(CREATED_AT, gte=start, lte=end).to_mongo()},
        {"$group": {"_id": {"month": {"$month": f"${CREATED_AT}"}}, **_status_accumulators()}},
        {"$sort": {"_id.month": 1}},
    ]


class StatsService:
    """Overall and month-wise figures for the customer collection.

    Each scope is a single aggregation pass run by the store; the two passes
    are independent reads and run concurrently. Either both succeed or the
    call raises, so callers never see partial statistics.
    """

    def __init__(self, customer_store, clock: Callable[[], datetime] = datetime.utcnow):
        self.customer_store = customer_store
        self.clock = clock

    async def compute(self, now: Optional[datetime] = None) -> CustomerStats:
        year = (now or self.clock()).year
        try:
            overall_rows, month_rows = await asyncio.gather(
                self.customer_store.aggregate(overall_pipeline()),
                self.customer_store.aggregate(monthwise_pipeline(year)),
            )
        except StoreError:
            logger.exception("Failed to compute customer stats")
            raise
        except Exception as e:
            logger.exception("Unexpected error computing customer stats")
            raise StoreError("Failed to compute stats", error=str(e)) from e

        overall = overall_rows[0] if overall_rows else {}
        stats = CustomerStats(
            totalCustomers=overall.get("count", 0),
            approvedCount=overall.get("approved", 0),
            pendingCount=overall.get("pending", 0),
            rejectedCount=overall.get("rejected", 0),
            totalLoanAmount=overall.get("loanTotal") or 0,
            monthwise=self._monthwise(month_rows),
        )
        logger.debug("Stats computed for %s: total=%s, months=%s", year, stats.totalCustomers, len(stats.monthwise))
        return stats

    @staticmethod
    def _monthwise(rows: List[Dict[str, Any]]) -> List[MonthlyStats]:
        entries = [
            MonthlyStats(
                month=row["_id"]["month"],
                approved=row.get("approved", 0),
                pending=row.get("pending", 0),
                rejected=row.get("rejected", 0),
                loanTotal=row.get("loanTotal") or 0,
                count=row.get("count", 0),
            )
            for row in rows
            if row.get("count", 0) > 0
        ]
        # Ascending by month regardless of store ordering
        entries.sort(key=lambda entry: entry.month)
        return entries
