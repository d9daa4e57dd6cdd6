from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.common.utils import success_response
from marketplace.config.admin_config import admin_config
from marketplace.db.dependencies import get_session
from marketplace.payouts.dependencies import current_seller, require_roles, validated_body
from marketplace.payouts.models import (MobileMoneyIn, PasswordConfirmIn, PayoutMethodIn, PayoutMethodUpdateIn,
                                        PayoutScheduleIn, VerifyPayoutMethodIn)
from marketplace.payouts import services
from marketplace.payouts.constants import logger

payout_settings_router = APIRouter(dependencies=[require_roles(*admin_config.SELLER_ROLES)])


@payout_settings_router.get("/payout-methods")
async def list_payout_methods(seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    methods = await services.list_payout_methods(session, seller_id)
    return success_response({"payoutMethods": methods})


#** registered before /{method_id} routes , "default" is not a method id
@payout_settings_router.get("/payout-methods/default")
async def get_default_payout_method(seller_id: int = Depends(current_seller),
                                    session: AsyncSession = Depends(get_session)):
    method = await services.get_default_disbursement_method(session, seller_id)
    return success_response({"payoutMethod": method})


@payout_settings_router.post("/payout-methods")
async def add_payout_method(request: Request, payload: PayoutMethodIn = Depends(validated_body(PayoutMethodIn)),
                            seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):

    logger.info("payout.add.attempt", extra={"user_public_id": request.state.user_public_id,
                                             "kind": payload.kind.value if payload.kind else None})

    result = await services.add_payout_method(session, seller_id, payload)
    return success_response({"message": "Payout method added successfully", **result},
                            status_code=status.HTTP_201_CREATED)


@payout_settings_router.put("/payout-methods/{method_id}")
async def update_payout_method(request: Request, method_id: str,
                               payload: PayoutMethodUpdateIn = Depends(validated_body(PayoutMethodUpdateIn)),
                               seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):

    logger.info("payout.update.attempt", extra={"user_public_id": request.state.user_public_id,
                                                "method_public_id": method_id})

    result = await services.update_payout_method(session, seller_id, method_id, payload)
    return success_response({"message": "Payout method updated successfully", **result})


@payout_settings_router.delete("/payout-methods/{method_id}")
async def delete_payout_method(request: Request, method_id: str,
                               payload: PasswordConfirmIn = Depends(validated_body(PasswordConfirmIn)),
                               seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):

    logger.info("payout.delete.attempt", extra={"user_public_id": request.state.user_public_id,
                                                "method_public_id": method_id})

    await services.delete_payout_method(session, seller_id, method_id, payload.password)
    return success_response({"message": "Payout method deleted successfully"})


@payout_settings_router.post("/payout-methods/{method_id}/verify")
async def verify_payout_method(request: Request, method_id: str,
                               payload: VerifyPayoutMethodIn = Depends(validated_body(VerifyPayoutMethodIn)),
                               seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):

    logger.info("payout.verify.attempt", extra={"user_public_id": request.state.user_public_id,
                                                "method_public_id": method_id})

    result = await services.verify_payout_method(session, seller_id, method_id, payload)
    return success_response({"message": "Payout method verified successfully", **result})


# mobile money ---------------------------------------------------------------------------------------


@payout_settings_router.get("/mobile-money")
async def get_mobile_money(seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    return success_response({"mobileMoney": await services.get_mobile_money(session, seller_id)})


async def _save_mobile_money(payload: MobileMoneyIn, seller_id: int, session: AsyncSession):
    result = await services.upsert_mobile_money(session, seller_id, payload)
    created = result.pop("created")
    return success_response({"message": "Mobile money account updated successfully", **result},
                            status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@payout_settings_router.post("/mobile-money")
async def add_mobile_money(payload: MobileMoneyIn = Depends(validated_body(MobileMoneyIn)),
                           seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    return await _save_mobile_money(payload, seller_id, session)


@payout_settings_router.put("/mobile-money")
async def update_mobile_money(payload: MobileMoneyIn = Depends(validated_body(MobileMoneyIn)),
                              seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    return await _save_mobile_money(payload, seller_id, session)


@payout_settings_router.delete("/mobile-money")
async def delete_mobile_money(payload: PasswordConfirmIn = Depends(validated_body(PasswordConfirmIn)),
                              seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    await services.delete_mobile_money(session, seller_id, payload.password)
    return success_response({"message": "Mobile money account deleted successfully"})


# payout schedule ------------------------------------------------------------------------------------


@payout_settings_router.get("/payout-schedule")
async def get_payout_schedule(seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    return success_response({"payoutSchedule": await services.get_payout_schedule(session, seller_id)})


@payout_settings_router.put("/payout-schedule")
async def update_payout_schedule(payload: PayoutScheduleIn = Depends(validated_body(PayoutScheduleIn)),
                                 seller_id: int = Depends(current_seller), session: AsyncSession = Depends(get_session)):
    schedule = await services.update_payout_schedule(session, seller_id, payload)
    return success_response({"message": "Payout schedule updated successfully", "payoutSchedule": schedule})
