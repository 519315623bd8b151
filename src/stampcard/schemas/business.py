"""Business metadata mirrored for businesses the customer holds progress with."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BusinessSocials(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    facebook: str | None = None
    instagram: str | None = None
    twitter: str | None = None
    tiktok: str | None = None
    linkedin: str | None = None


class BusinessRewardSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    stamps_required: int | None = Field(None, alias="stampsRequired")
    is_active: bool | None = Field(None, alias="isActive")


class BusinessCampaignSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    status: str | None = None


class BusinessDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    logo: str | None = None
    address: str | None = None
    website: str | None = None
    socials: BusinessSocials | None = None
    phone: str | None = None
    email: str | None = None
    whatsapp: str | None = None
    rewards: list[BusinessRewardSummary] | None = None
    campaigns: list[BusinessCampaignSummary] | None = None


__all__ = ["BusinessCampaignSummary", "BusinessDetails", "BusinessRewardSummary", "BusinessSocials"]
