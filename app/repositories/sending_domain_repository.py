from typing import Any

from psycopg.types.json import Jsonb

from app.db.helpers import execute_query, fetch_all, fetch_one
from app.models.domain.dns_domain import SendingDomain


class SendingDomainRepository:
    SELECT_COLUMNS = """
        id, user_id, domain, status, dns_records, mailgun_domain_name,
        verification_attempts, last_verification_at, verified_at,
        error_message, created_at, updated_at
    """

    @classmethod
    async def create(
        cls,
        user_id: int,
        domain: str,
        dns_records: dict[str, Any] | None,
        mailgun_domain_name: str | None,
    ) -> SendingDomain:
        row = await fetch_one(
            f"""
            INSERT INTO sending_domains (user_id, domain, status, dns_records, mailgun_domain_name)
            VALUES (%s, %s, 'pending', %s, %s)
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (user_id, domain, Jsonb(dns_records) if dns_records is not None else None, mailgun_domain_name),
        )
        return SendingDomain.from_row(row)

    @classmethod
    async def find_by_id(cls, domain_id: int) -> SendingDomain | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM sending_domains WHERE id = %s", (domain_id,)
        )
        return SendingDomain.from_row(row) if row else None

    @classmethod
    async def find_by_domain(cls, domain: str) -> SendingDomain | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM sending_domains WHERE domain = %s", (domain,)
        )
        return SendingDomain.from_row(row) if row else None

    @classmethod
    async def list_for_user(cls, user_id: int) -> list[SendingDomain]:
        rows = await fetch_all(
            f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM sending_domains
            WHERE user_id = %s
            ORDER BY created_at DESC
            """,
            (user_id,),
        )
        return [SendingDomain.from_row(row) for row in rows]

    @classmethod
    async def update_verification(
        cls, domain_id: int, status: str, error_message: str | None
    ) -> SendingDomain:
        row = await fetch_one(
            f"""
            UPDATE sending_domains
            SET status = %s,
                error_message = %s,
                verification_attempts = verification_attempts + 1,
                last_verification_at = NOW(),
                verified_at = CASE WHEN %s = 'verified' THEN NOW() ELSE verified_at END,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {cls.SELECT_COLUMNS}
            """,
            (status, error_message, status, domain_id),
        )
        return SendingDomain.from_row(row)

    @staticmethod
    async def delete(domain_id: int) -> bool:
        return await execute_query("DELETE FROM sending_domains WHERE id = %s", (domain_id,)) > 0
