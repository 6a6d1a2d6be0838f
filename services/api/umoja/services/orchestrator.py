"""Side effects of a completed order.

Runs detached from the request that completed the order, in a fixed order:
1. append a completed-transaction price observation
2. recalculate the farmer's trust score
3. find alerts matching the crop/county at the order's price
4. claim and notify each matching alert

Every step runs in its own session and its own try block. A failed step is
logged with the order id and step name and the next step still runs; nothing
already written is rolled back.
"""

from dataclasses import dataclass, field
import logging

from umoja.models import Listing, Order, PriceAlert
from umoja.models.enums import PriceObservationSource
from umoja.services.alerts import find_matching_alerts, fire_alert, target_reached_message
from umoja.services.clock import as_utc, utcnow
from umoja.services.prices import append_observation
from umoja.services.sms_client import NotificationGateway, get_sms_gateway
from umoja.services.trust_engine import TrustScoreEngine
from umoja.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")


@dataclass
class OrchestratorReport:
    order_id: int
    observation_recorded: bool = False
    trust_recalculated: bool = False
    alerts_matched: int = 0
    alerts_fired: int = 0
    failed_steps: list[str] = field(default_factory=list)


class SideEffectOrchestrator:
    def __init__(
        self,
        trust_engine: TrustScoreEngine | None = None,
        gateway: NotificationGateway | None = None,
    ):
        self.trust_engine = trust_engine or TrustScoreEngine()
        self.gateway = gateway or get_sms_gateway()

    async def run(self, order_id: int) -> OrchestratorReport:
        """Run every step for one completed order; never raises."""
        report = OrchestratorReport(order_id=order_id)

        try:
            order, county = await self._load(order_id)
        except Exception:
            logger.exception(f"[orchestrator] failed to load order order_id={order_id} step=load")
            report.failed_steps.append("load")
            return report

        completed_at = as_utc(order.received_by_buyer_at) or utcnow()

        # 1. price observation
        try:
            async with get_session() as session:
                await append_observation(
                    session,
                    crop_name=order.crop_name,
                    county=county,
                    price_per_unit=order.price_per_unit,
                    unit=order.unit,
                    source=PriceObservationSource.ORDER_COMPLETED,
                    farmer_id=order.farmer_id,
                    order_id=order.id,
                    listing_id=order.listing_id,
                    recorded_at=completed_at,
                )
            report.observation_recorded = True
        except Exception:
            logger.exception(f"[orchestrator] step=observation failed order_id={order_id}")
            report.failed_steps.append("observation")

        # 2. trust score
        try:
            await self.trust_engine.recalculate(order.farmer_id)
            report.trust_recalculated = True
        except Exception:
            logger.exception(
                f"[orchestrator] step=trust failed order_id={order_id} farmer_id={order.farmer_id}"
            )
            report.failed_steps.append("trust")

        # 3. matching alerts
        alerts: list[PriceAlert] = []
        try:
            async with get_session() as session:
                alerts = await find_matching_alerts(
                    session,
                    crop_name=order.crop_name,
                    county=county,
                    price=order.price_per_unit,
                    now=completed_at,
                )
            report.alerts_matched = len(alerts)
        except Exception:
            logger.exception(f"[orchestrator] step=match failed order_id={order_id}")
            report.failed_steps.append("match")

        # 4. claim + notify
        for alert in alerts:
            try:
                fired = await fire_alert(
                    alert,
                    message=target_reached_message(alert),
                    now=completed_at,
                    gateway=self.gateway,
                    trigger=f"order:{order_id}",
                )
            except Exception:
                logger.exception(f"[orchestrator] step=notify failed order_id={order_id} alert_id={alert.id}")
                if "notify" not in report.failed_steps:
                    report.failed_steps.append("notify")
                continue
            if fired:
                report.alerts_fired += 1

        logger.info(
            f"[orchestrator] done order_id={order_id} observation={report.observation_recorded} "
            f"trust={report.trust_recalculated} matched={report.alerts_matched} fired={report.alerts_fired}"
        )
        return report

    async def _load(self, order_id: int) -> tuple[Order, str]:
        async with get_session() as session:
            order = await session.get(Order, order_id)
            if order is None:
                raise LookupError(f"order {order_id} not found")
            listing = await session.get(Listing, order.listing_id)
            if listing is None:
                raise LookupError(f"listing {order.listing_id} not found for order {order_id}")
            return order, listing.pickup_county

