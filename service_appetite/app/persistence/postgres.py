"""
PostgreSQL persistence layer for the Appetite Service.

Rules and submissions live in memory while the service runs; this layer
writes them through to PostgreSQL and reloads them at startup.
"""

from typing import List, Optional

import asyncpg

from shared.errors import PersistenceError
from shared.logging import get_logger

from ..checker.models import Decision, Location, Submission
from ..rules.models import Rule

RULE_COLUMNS = (
    "rule_id", "title", "description", "business_type", "naics_codes", "states",
    "carrier", "product", "restrictions", "priority", "outcome", "rule_version",
    "status", "effective_from", "effective_to", "min_revenue", "max_revenue",
    "min_years_in_business", "max_years_in_business", "prior_claims_allowed",
    "conditions", "contact_email", "created_by", "created_at", "updated_at",
    "additional_json",
)


class PostgreSQLPersistence:
    """PostgreSQL persistence for rules and submissions."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("appetite.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Open the pool and create tables."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=1,
                max_size=10,
                command_timeout=30
            )
            await self._create_tables()
            self.logger.info("PostgreSQL persistence started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise PersistenceError("Failed to start PostgreSQL persistence", {"error": str(e)})

    async def stop(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS rules (
                    rule_id VARCHAR(64) PRIMARY KEY,
                    position BIGSERIAL,
                    title TEXT NOT NULL,
                    description TEXT,
                    business_type VARCHAR(255),
                    naics_codes TEXT[] NOT NULL DEFAULT '{}',
                    states TEXT[] NOT NULL DEFAULT '{}',
                    carrier VARCHAR(255),
                    product VARCHAR(255),
                    restrictions TEXT[] NOT NULL DEFAULT '{}',
                    priority VARCHAR(32),
                    outcome VARCHAR(64),
                    rule_version VARCHAR(64),
                    status VARCHAR(64),
                    effective_from TIMESTAMP WITH TIME ZONE,
                    effective_to TIMESTAMP WITH TIME ZONE,
                    min_revenue NUMERIC,
                    max_revenue NUMERIC,
                    min_years_in_business INTEGER,
                    max_years_in_business INTEGER,
                    prior_claims_allowed INTEGER,
                    conditions TEXT[] NOT NULL DEFAULT '{}',
                    contact_email VARCHAR(255),
                    created_by VARCHAR(255),
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE,
                    additional_json TEXT
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS submissions (
                    id BIGSERIAL PRIMARY KEY,
                    submission_id VARCHAR(255) NOT NULL,
                    business_desc TEXT NOT NULL DEFAULT '',
                    naics_code TEXT NOT NULL,
                    state TEXT NOT NULL,
                    zipcode TEXT,
                    decision VARCHAR(32) NOT NULL,
                    confidence DOUBLE PRECISION NOT NULL,
                    reason TEXT NOT NULL,
                    matched_rule VARCHAR(255) NOT NULL,
                    evaluated_at TIMESTAMP WITH TIME ZONE NOT NULL
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_submissions_submission_id
                ON submissions(submission_id);
            """)

    async def save_rule(self, rule: Rule) -> bool:
        """Insert or update a rule."""
        placeholders = ", ".join(f"${i}" for i in range(1, len(RULE_COLUMNS) + 1))
        updates = ", ".join(
            f"{column} = EXCLUDED.{column}"
            for column in RULE_COLUMNS if column not in ("rule_id", "created_at")
        )
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(
                    f"INSERT INTO rules ({', '.join(RULE_COLUMNS)}) "
                    f"VALUES ({placeholders}) "
                    f"ON CONFLICT (rule_id) DO UPDATE SET {updates}",
                    *[getattr(rule, column) for column in RULE_COLUMNS]
                )
            self.logger.info("Rule saved", rule_id=rule.rule_id)
            return True

        except Exception as e:
            self.logger.error("Error saving rule", rule_id=rule.rule_id, error=str(e))
            return False

    async def delete_rule(self, rule_id: str) -> bool:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM rules WHERE rule_id = $1", rule_id
                )
            if result == "DELETE 1":
                self.logger.info("Rule deleted", rule_id=rule_id)
                return True
            self.logger.warning("Rule not found for deletion", rule_id=rule_id)
            return False

        except Exception as e:
            self.logger.error("Error deleting rule", rule_id=rule_id, error=str(e))
            return False

    async def load_all_rules(self) -> List[Rule]:
        """Rules in the order they were first written. Raises ``PersistenceError`` on failure."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT * FROM rules ORDER BY position ASC"
                )
            return [self._row_to_rule(row) for row in rows]

        except Exception as e:
            self.logger.error("Error loading rules", error=str(e))
            raise PersistenceError("Failed to load rules", {"error": str(e)})

    async def save_submission(self, submission: Submission) -> bool:
        """Append a submission record."""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO submissions (
                        submission_id, business_desc, naics_code, state, zipcode,
                        decision, confidence, reason, matched_rule, evaluated_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                """,
                    submission.submission_id, submission.business_desc, submission.naics_code,
                    submission.location.state, submission.location.zipcode,
                    submission.decision.value, submission.confidence, submission.reason,
                    submission.matched_rule, submission.evaluated_at
                )
            return True

        except Exception as e:
            self.logger.error(
                "Error saving submission", submission_id=submission.submission_id, error=str(e)
            )
            return False

    async def load_all_submissions(self) -> List[Submission]:
        """Submissions in insertion order. Raises ``PersistenceError`` on failure."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT * FROM submissions ORDER BY id ASC"
                )
            return [self._row_to_submission(row) for row in rows]

        except Exception as e:
            self.logger.error("Error loading submissions", error=str(e))
            raise PersistenceError("Failed to load submissions", {"error": str(e)})

    def _row_to_rule(self, row) -> Rule:
        values = {column: row[column] for column in RULE_COLUMNS}
        for column in ("naics_codes", "states", "restrictions", "conditions"):
            values[column] = list(values[column] or [])
        return Rule(**values)

    def _row_to_submission(self, row) -> Submission:
        return Submission(
            submission_id=row['submission_id'],
            business_desc=row['business_desc'],
            naics_code=row['naics_code'],
            location=Location(state=row['state'], zipcode=row['zipcode']),
            decision=Decision(row['decision']),
            confidence=row['confidence'],
            reason=row['reason'],
            matched_rule=row['matched_rule'],
            evaluated_at=row['evaluated_at'],
        )

    async def health_check(self) -> bool:
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False
