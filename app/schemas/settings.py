"""
Merchant settings schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged."""
    openai_key: Optional[str] = Field(None, alias="openaiKey", description="Model API key override")
    system_prompt: Optional[str] = Field(None, alias="systemPrompt", max_length=100, description="System prompt key")
    storefront_access_token: Optional[str] = Field(
        None, alias="storefrontAccessToken", description="Storefront API access token"
    )

    class Config:
        populate_by_name = True


class SettingsResponse(BaseModel):
    """Settings as reported to the merchant; secrets only as presence flags."""
    shop_id: str = Field(..., alias="shopId")
    system_prompt: Optional[str] = Field(None, alias="systemPrompt")
    has_openai_key: bool = Field(False, alias="hasOpenaiKey")
    has_storefront_access_token: bool = Field(False, alias="hasStorefrontAccessToken")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        from_attributes = True

    @classmethod
    def from_row(cls, row) -> "SettingsResponse":
        return cls(
            shop_id=row.shop_id,
            system_prompt=row.system_prompt,
            has_openai_key=bool(row.openai_key),
            has_storefront_access_token=bool(row.storefront_access_token),
            updated_at=row.updated_at,
        )
