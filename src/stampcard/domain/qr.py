"""Encode/decode of the QR wire formats that drive stamp progress.

Decoding runs an ordered chain of pure matchers; the first matcher that
returns a payload wins and anything unmatched becomes :class:`UnknownQR`.

Formats:
    REWARD:{id}:{name}:{requirement}:{rewardType}:{products}
    REWARD:{id}:{name}
    COMPANY:{7-digit number}:{name}
    CAMPAIGN:{id}:{name}:{description}
    {"type": "reward", "reward": {...}, "business": {...}}
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Mapping, Optional, Sequence, Tuple, Union

REWARD_PREFIX = "REWARD:"
COMPANY_PREFIX = "COMPANY:"
CAMPAIGN_PREFIX = "CAMPAIGN:"
DEFAULT_REWARD_TYPE = "free_product"
COMPANY_NUMBER_WIDTH = 7

_COMPANY_PATTERN = re.compile(r"^COMPANY:(\d{7}):(.+)$", re.DOTALL)
_CAMPAIGN_PATTERN = re.compile(r"^CAMPAIGN:([^:]+):([^:]+)(?::(.*))?$", re.DOTALL)
_REWARD_PATTERN = re.compile(r"^REWARD:([^:]+)(?::.*)?$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class BusinessInfo:
    """Optional business block carried by the JSON envelope."""

    name: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    logo: str | None = None
    social_media: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RewardQRData:
    id: str
    name: str
    requirement: int = 1
    reward_type: str = DEFAULT_REWARD_TYPE
    products: Tuple[str, ...] = ()
    points_per_purchase: int | None = None
    pin_code: str | None = None
    business_id: str | None = None
    business: BusinessInfo | None = None


@dataclass(frozen=True, slots=True)
class CompanyQRData:
    number: str
    name: str


@dataclass(frozen=True, slots=True)
class CampaignQRData:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class RewardQR:
    data: RewardQRData
    type: Literal["reward"] = "reward"


@dataclass(frozen=True, slots=True)
class CompanyQR:
    data: CompanyQRData
    type: Literal["company"] = "company"


@dataclass(frozen=True, slots=True)
class CampaignQR:
    data: CampaignQRData
    type: Literal["campaign"] = "campaign"


@dataclass(frozen=True, slots=True)
class UnknownQR:
    data: None = None
    type: Literal["unknown"] = "unknown"


QRPayload = Union[RewardQR, CompanyQR, CampaignQR, UnknownQR]
Matcher = Callable[[str], Optional[QRPayload]]


def _coerce_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        text = str(value).strip()
        return text or None
    return None


def _split_products(raw: str) -> Tuple[str, ...]:
    return tuple(item for item in raw.split(",") if item)


def _load_json_object(raw: str) -> Mapping[str, Any] | None:
    if not raw.startswith("{"):
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, Mapping) else None


def _reward_block(payload: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if payload is None or payload.get("type") != "reward":
        return None
    reward = payload.get("reward")
    if not isinstance(reward, Mapping) or not _optional_str(reward.get("id")):
        return None
    return reward


def _business_info(block: Any) -> BusinessInfo | None:
    if not isinstance(block, Mapping):
        return None
    social = block.get("socialMedia")
    return BusinessInfo(
        name=_optional_str(block.get("name")),
        address=_optional_str(block.get("address")),
        phone=_optional_str(block.get("phone")),
        email=_optional_str(block.get("email")),
        website=_optional_str(block.get("website")),
        logo=_optional_str(block.get("logo")),
        social_media=dict(social) if isinstance(social, Mapping) else {},
    )


def match_json_reward(raw: str) -> RewardQR | None:
    payload = _load_json_object(raw)
    reward = _reward_block(payload)
    if reward is None:
        return None

    products = reward.get("products")
    if isinstance(products, str):
        product_list = _split_products(products)
    elif isinstance(products, Sequence):
        product_list = tuple(str(item) for item in products if item)
    else:
        product_list = ()

    points_per_purchase = reward.get("pointsPerPurchase")
    data = RewardQRData(
        id=str(reward["id"]).strip(),
        name=_optional_str(reward.get("name")) or "",
        requirement=_coerce_int(reward.get("requirement"), 1),
        reward_type=_optional_str(reward.get("rewardType")) or DEFAULT_REWARD_TYPE,
        products=product_list,
        points_per_purchase=(
            _coerce_int(points_per_purchase, 1) if points_per_purchase is not None else None
        ),
        pin_code=_optional_str(reward.get("pinCode")),
        business_id=_optional_str(reward.get("businessId")) or _optional_str(payload.get("businessId")),
        business=_business_info(payload.get("business")),
    )
    return RewardQR(data=data)


def match_company(raw: str) -> CompanyQR | None:
    match = _COMPANY_PATTERN.match(raw)
    if not match:
        return None
    return CompanyQR(data=CompanyQRData(number=match.group(1), name=match.group(2)))


def match_campaign(raw: str) -> CampaignQR | None:
    match = _CAMPAIGN_PATTERN.match(raw)
    if not match:
        return None
    return CampaignQR(
        data=CampaignQRData(
            id=match.group(1),
            name=match.group(2),
            description=match.group(3) or "",
        )
    )


def match_text_reward(raw: str) -> RewardQR | None:
    if not _REWARD_PATTERN.match(raw):
        return None
    segments = raw[len(REWARD_PREFIX):].split(":")
    if len(segments) >= 5:
        data = RewardQRData(
            id=segments[0],
            name=":".join(segments[1:-3]),
            requirement=_coerce_int(segments[-3], 1),
            reward_type=segments[-2] or DEFAULT_REWARD_TYPE,
            products=_split_products(segments[-1]),
        )
    else:
        data = RewardQRData(id=segments[0], name=":".join(segments[1:]))
    return RewardQR(data=data)


MATCHERS: Tuple[Matcher, ...] = (
    match_json_reward,
    match_company,
    match_campaign,
    match_text_reward,
)


def decode(raw: str | None) -> QRPayload:
    """Decode a raw scanner string into a tagged payload."""

    if not raw or not isinstance(raw, str):
        return UnknownQR()
    normalized = raw.strip()
    for matcher in MATCHERS:
        payload = matcher(normalized)
        if payload is not None:
            return payload
    return UnknownQR()


def is_valid(raw: str | None) -> bool:
    """Return True when ``raw`` matches a known format, without decoding it."""

    if not raw or not isinstance(raw, str):
        return False
    normalized = raw.strip()
    if normalized.startswith("{"):
        if _reward_block(_load_json_object(normalized)) is not None:
            return True
    return bool(
        _COMPANY_PATTERN.match(normalized)
        or _CAMPAIGN_PATTERN.match(normalized)
        or _REWARD_PATTERN.match(normalized)
    )


def encode_reward(
    reward_id: str,
    name: str,
    requirement: int = 1,
    reward_type: str = DEFAULT_REWARD_TYPE,
    products: Iterable[str] = (),
) -> str:
    return f"{REWARD_PREFIX}{reward_id}:{name}:{int(requirement)}:{reward_type}:{','.join(products)}"


def encode_company(number: int | str, name: str) -> str:
    digits = str(number).strip()
    if not digits.isdigit() or len(digits) > COMPANY_NUMBER_WIDTH:
        raise ValueError(f"Company number must be at most {COMPANY_NUMBER_WIDTH} digits: {number!r}")
    return f"{COMPANY_PREFIX}{digits.zfill(COMPANY_NUMBER_WIDTH)}:{name}"


def encode_campaign(campaign_id: str, name: str, description: str = "") -> str:
    return f"{CAMPAIGN_PREFIX}{campaign_id}:{name}:{description}"


__all__ = [
    "BusinessInfo",
    "CampaignQR",
    "CampaignQRData",
    "CompanyQR",
    "CompanyQRData",
    "QRPayload",
    "RewardQR",
    "RewardQRData",
    "UnknownQR",
    "decode",
    "encode_campaign",
    "encode_company",
    "encode_reward",
    "is_valid",
]
