"""Tests for the reconciliation API router."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from tests.factories import DocumentFactory, TransactionFactory, create_test_token


async def test_health(client) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_requires_bearer_token(client) -> None:
    response = await client.post("/reconciliation/auto-match")

    assert response.status_code == 401


async def test_rejects_token_without_subject(client) -> None:
    token = create_test_token({"scope": "reconciliation"})

    response = await client.post(
        "/reconciliation/auto-match", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Token missing subject"


async def test_rejects_expired_token(client, user_id) -> None:
    token = create_test_token({"sub": str(user_id)}, expires_delta=timedelta(minutes=-1))

    response = await client.post(
        "/reconciliation/auto-match", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


async def test_auto_match_endpoint(client, db, user_id, auth_headers) -> None:
    tx = await TransactionFactory.create_async(db, user_id=user_id)
    doc = await DocumentFactory.create_async(db, user_id=user_id, tax_amount=Decimal("5.00"))
    await db.commit()

    response = await client.post("/reconciliation/auto-match", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["matched_count"] == 1
    assert body["breakdown_entries_created"] == 1
    assert body["matches"][0]["transaction_id"] == str(tx.id)
    assert body["matches"][0]["document_id"] == str(doc.id)
    assert body["matches"][0]["score"] == 80.0


async def test_manual_match_endpoint_statuses(client, db, user_id, auth_headers) -> None:
    tx = await TransactionFactory.create_async(db, user_id=user_id)
    other_tx = await TransactionFactory.create_async(db, user_id=user_id)
    doc = await DocumentFactory.create_async(db, user_id=user_id)
    await db.commit()

    created = await client.post(
        "/reconciliation/match",
        json={"transaction_id": str(tx.id), "document_id": str(doc.id)},
        headers=auth_headers,
    )
    assert created.status_code == 200
    assert created.json()["message"] == "Match created"

    conflict = await client.post(
        "/reconciliation/match",
        json={"transaction_id": str(other_tx.id), "document_id": str(doc.id)},
        headers=auth_headers,
    )
    assert conflict.status_code == 409

    missing = await client.post(
        "/reconciliation/match",
        json={"transaction_id": str(other_tx.id), "document_id": str(uuid4())},
        headers=auth_headers,
    )
    assert missing.status_code == 404


async def test_manual_match_hides_other_users_records(client, db, auth_headers) -> None:
    stranger = uuid4()
    tx = await TransactionFactory.create_async(db, user_id=stranger)
    doc = await DocumentFactory.create_async(db, user_id=stranger)
    await db.commit()

    response = await client.post(
        "/reconciliation/match",
        json={"transaction_id": str(tx.id), "document_id": str(doc.id)},
        headers=auth_headers,
    )

    assert response.status_code == 404


async def test_candidates_endpoint(client, db, user_id, auth_headers) -> None:
    tx = await TransactionFactory.create_async(db, user_id=user_id, date=date(2024, 3, 10))
    doc = await DocumentFactory.create_async(db, user_id=user_id, document_date=date(2024, 3, 9))
    await db.commit()

    response = await client.get("/reconciliation/candidates", params={"limit": 10}, headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    item = body["items"][0]
    assert item["transaction"]["id"] == str(tx.id)
    candidate = item["candidates"][0]
    assert candidate["document"]["id"] == str(doc.id)
    assert candidate["confidence"] == "high"
    assert candidate["date_diff"] == 1
    assert candidate["document"]["file_type"] == "receipt"


async def test_candidates_limit_is_validated(client, auth_headers) -> None:
    response = await client.get("/reconciliation/candidates", params={"limit": 0}, headers=auth_headers)

    assert response.status_code == 422


async def test_candidates_endpoint_offset_and_account(client, db, user_id, auth_headers) -> None:
    account = uuid4()
    newest = await TransactionFactory.create_async(
        db, user_id=user_id, bank_account_id=account, date=date(2024, 3, 10)
    )
    older = await TransactionFactory.create_async(
        db, user_id=user_id, bank_account_id=account, date=date(2024, 3, 1)
    )
    await TransactionFactory.create_async(db, user_id=user_id, date=date(2024, 3, 12))
    await db.commit()

    response = await client.get(
        "/reconciliation/candidates",
        params={"bank_account_id": str(account)},
        headers=auth_headers,
    )
    assert [item["transaction"]["id"] for item in response.json()["items"]] == [
        str(newest.id),
        str(older.id),
    ]

    paged = await client.get(
        "/reconciliation/candidates",
        params={"bank_account_id": str(account), "offset": 1},
        headers=auth_headers,
    )
    assert [item["transaction"]["id"] for item in paged.json()["items"]] == [str(older.id)]

    invalid = await client.get("/reconciliation/candidates", params={"offset": -1}, headers=auth_headers)
    assert invalid.status_code == 422
