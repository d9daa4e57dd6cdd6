import pytest
from sqlalchemy import select
from conftest import SELLER_PASSWORD, SETTINGS, list_methods
from marketplace.db.connection import async_session
from marketplace.schema.full_schema import PayoutMethod

MOBILE = f"{SETTINGS}/mobile-money"


def mobile_payload(**extra):
    body = {
        "mobileMoneyProvider": "MTN",
        "mobileMoneyNumber": "0244001122",
        "accountHolderName": "Ada Seller",
        "country": "GH",
        "password": SELLER_PASSWORD,
    }
    body.update(extra)
    return body


@pytest.mark.asyncio
async def test_get_without_account(ac_client, seller):
    resp = await ac_client.get(MOBILE, headers=seller.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["mobileMoney"] is None


async def test_create_defaults_currency_and_masks_number(ac_client, seller):
    resp = await ac_client.post(MOBILE, json=mobile_payload(), headers=seller.headers)
    assert resp.status_code == 201, resp.text
    mobile = resp.json()["data"]["mobileMoney"]
    assert mobile["kind"] == "mobile_money"
    assert mobile["currency"] == "USD"
    assert mobile["mobileMoneyNumber"] == "****1122"
    assert mobile["verificationStatus"] == "pending"

    async with async_session() as session:
        row = (await session.execute(select(PayoutMethod))).scalar_one()
        assert "0244001122" not in row.mobile_money_number

    methods = await list_methods(ac_client, seller)
    assert [m["kind"] for m in methods] == ["mobile_money"]


async def test_create_requires_number(ac_client, seller):
    body = mobile_payload()
    del body["mobileMoneyNumber"]
    resp = await ac_client.post(MOBILE, json=body, headers=seller.headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["errors"][0]["field"] == "mobileMoneyNumber"


async def test_update_keeps_number_and_status(ac_client, seller):
    created = (await ac_client.post(MOBILE, json=mobile_payload(), headers=seller.headers)).json()["data"]["mobileMoney"]
    await ac_client.post(f"{SETTINGS}/payout-methods/{created['id']}/verify",
                         json={"confirmAccountDetails": True, "password": SELLER_PASSWORD}, headers=seller.headers)

    body = mobile_payload(mobileMoneyProvider="Vodafone", currency="ghs")
    del body["mobileMoneyNumber"]
    resp = await ac_client.put(MOBILE, json=body, headers=seller.headers)
    assert resp.status_code == 200, resp.text
    mobile = resp.json()["data"]["mobileMoney"]
    assert mobile["id"] == created["id"]
    assert mobile["mobileMoneyProvider"] == "Vodafone"
    assert mobile["currency"] == "GHS"
    assert mobile["mobileMoneyNumber"] == "****1122"
    assert mobile["verificationStatus"] == "verified"
    assert mobile["addedAt"] == created["addedAt"]


async def test_new_number_needs_verification_again(ac_client, seller):
    created = (await ac_client.post(MOBILE, json=mobile_payload(), headers=seller.headers)).json()["data"]["mobileMoney"]
    await ac_client.post(f"{SETTINGS}/payout-methods/{created['id']}/verify",
                         json={"confirmAccountDetails": True, "password": SELLER_PASSWORD}, headers=seller.headers)

    resp = await ac_client.put(MOBILE, json=mobile_payload(mobileMoneyNumber="0209998877"), headers=seller.headers)
    mobile = resp.json()["data"]["mobileMoney"]
    assert mobile["mobileMoneyNumber"] == "****8877"
    assert mobile["verificationStatus"] == "pending"


async def test_delete_mobile_money(ac_client, seller):
    await ac_client.post(MOBILE, json=mobile_payload(), headers=seller.headers)

    resp = await ac_client.request("DELETE", MOBILE, json={}, headers=seller.headers)
    assert resp.status_code == 400

    resp = await ac_client.request("DELETE", MOBILE, json={"password": "wrong-password"}, headers=seller.headers)
    assert resp.status_code == 401

    resp = await ac_client.request("DELETE", MOBILE, json={"password": SELLER_PASSWORD}, headers=seller.headers)
    assert resp.status_code == 200
    assert (await ac_client.get(MOBILE, headers=seller.headers)).json()["data"]["mobileMoney"] is None

    resp = await ac_client.request("DELETE", MOBILE, json={"password": SELLER_PASSWORD}, headers=seller.headers)
    assert resp.status_code == 404
