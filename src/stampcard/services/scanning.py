"""Turn a raw camera string into a ledger scan."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from stampcard.domain.qr import CampaignQR, CompanyQR, QRPayload, RewardQR, decode
from stampcard.schemas.customer import ProgressKind, RewardType
from stampcard.services.ledger.service import CustomerLedger, ScanExtras, ScanOutcome

INVALID_MESSAGE = "This does not appear to be a valid loyalty QR code."


class ScanStatus(str, Enum):
    RECORDED = "recorded"
    INVALID = "invalid"
    UNSUPPORTED = "unsupported"


@dataclass
class ScanResult:
    status: ScanStatus
    message: str
    kind: ProgressKind | None = None
    outcome: ScanOutcome | None = None


class ScanProcessor:
    def __init__(self, ledger: CustomerLedger, *, campaign_points_required: int = 5) -> None:
        self._ledger = ledger
        self._campaign_points_required = campaign_points_required

    async def process(self, raw: str) -> ScanResult:
        payload = decode(raw or "")
        if isinstance(payload, RewardQR):
            outcome = await self._record_reward(payload, raw.strip())
            kind = ProgressKind.REWARD
        elif isinstance(payload, CompanyQR):
            outcome = await self._record_company(payload, raw.strip())
            kind = ProgressKind.REWARD
        elif isinstance(payload, CampaignQR):
            outcome = await self._record_campaign(payload, raw.strip())
            kind = ProgressKind.CAMPAIGN
        elif payload.type == "unknown":
            logger.info("Scanned code not recognised")
            return ScanResult(status=ScanStatus.INVALID, message=INVALID_MESSAGE)
        else:  # pragma: no cover - closed union
            return self._unsupported(payload)

        return ScanResult(status=ScanStatus.RECORDED, message=_message(outcome), kind=kind, outcome=outcome)

    async def _record_reward(self, payload: RewardQR, raw: str) -> ScanOutcome:
        data = payload.data
        points_per_purchase = data.points_per_purchase or 1
        requirement = data.requirement or 1
        return await self._ledger.record_scan(
            ProgressKind.REWARD,
            data.id,
            data.name,
            points_awarded=points_per_purchase,
            points_required=requirement * points_per_purchase,
            business_id=data.business_id or "default",
            business_name=data.business.name if data.business else None,
            extra=ScanExtras(
                reward_type=data.reward_type,
                qr_code=raw,
                pin_code=data.pin_code,
                selected_products=list(data.products) or None,
            ),
        )

    async def _record_company(self, payload: CompanyQR, raw: str) -> ScanOutcome:
        data = payload.data
        return await self._ledger.record_scan(
            ProgressKind.REWARD,
            f"company-{data.number}",
            data.name,
            points_awarded=1,
            points_required=1,
            business_name=data.name,
            extra=ScanExtras(reward_type=RewardType.OTHER, qr_code=raw),
        )

    async def _record_campaign(self, payload: CampaignQR, raw: str) -> ScanOutcome:
        data = payload.data
        return await self._ledger.record_scan(
            ProgressKind.CAMPAIGN,
            data.id,
            data.name,
            points_awarded=1,
            points_required=self._campaign_points_required,
            extra=ScanExtras(qr_code=raw, description=data.description or None),
        )

    @staticmethod
    def _unsupported(payload: QRPayload) -> ScanResult:
        logger.warning("Scanned code type not supported", qr_type=payload.type)
        return ScanResult(status=ScanStatus.UNSUPPORTED, message=f"Unsupported code type: {payload.type}")


def _message(outcome: ScanOutcome) -> str:
    progress = outcome.progress
    if outcome.is_newly_earned:
        return f"Congratulations! You've earned {progress.display_name}."
    remaining = max(progress.points_required - progress.points_earned, 0)
    return (
        f"{progress.display_name}: {progress.points_earned}/{progress.points_required} points"
        f" ({remaining} to go)."
    )


__all__ = ["INVALID_MESSAGE", "ScanProcessor", "ScanResult", "ScanStatus"]
