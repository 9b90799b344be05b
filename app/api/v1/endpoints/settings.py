"""
Merchant settings endpoints.
"""

from fastapi import APIRouter, Depends

from app.core.dependencies import authenticate_shop, get_settings_store
from app.models.session import ShopSession
from app.schemas.settings import SettingsResponse, SettingsUpdate
from app.services.settings_store import SettingsStore

router = APIRouter()


@router.get("/{shop}")
async def read_settings(
    shop_session: ShopSession = Depends(authenticate_shop),
    store: SettingsStore = Depends(get_settings_store),
):
    """Current settings for the authenticated shop, created on first read."""
    row = store.get_or_create(shop_session.shop)
    return SettingsResponse.from_row(row).model_dump(mode="json", by_alias=True)


@router.put("/{shop}")
async def update_settings(
    changes: SettingsUpdate,
    shop_session: ShopSession = Depends(authenticate_shop),
    store: SettingsStore = Depends(get_settings_store),
):
    """Upsert the fields present in the body."""
    row = store.update(shop_session.shop, changes.model_dump(exclude_unset=True))
    return SettingsResponse.from_row(row).model_dump(mode="json", by_alias=True)
