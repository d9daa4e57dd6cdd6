from fastapi import APIRouter
from marketplace.api import version_prefix
from marketplace.common.routes import home_router
from marketplace.payouts.routes import payout_settings_router


public_routers = APIRouter(prefix=version_prefix)

public_routers.include_router(home_router, tags=["home"])

#--------------------------------------------------------------------------------------------------------

seller_routers = APIRouter(prefix=f"{version_prefix}/seller")

seller_routers.include_router(payout_settings_router, prefix="/settings", tags=["seller-payouts"])
