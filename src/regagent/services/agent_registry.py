"""Registered agent address registry.

Each supported state has exactly one registered agent street address.
The curated seed table lists the addresses the agent organization can
serve; a database row is created from the seed on the first request for
a state and reused afterwards.

Example:
    registry = AgentRegistryService(session)
    address = await registry.get_or_create_address("DE")
    print(address.formatted_address)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from regagent.core.config import DEFAULT_AGENT_NAME, ConfigValidationError

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession

    from regagent.db.models.agents import RegisteredAgentAddress

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_HOURS = "9:00 AM - 5:00 PM EST"

# Two-letter codes accepted in place of the full state name
STATE_ABBREVIATIONS: Mapping[str, str] = MappingProxyType(
    {
        "CA": "California",
        "NY": "New York",
        "TX": "Texas",
        "FL": "Florida",
        "DE": "Delaware",
        "NV": "Nevada",
        "WY": "Wyoming",
    }
)

INCLUDED_SERVICES: tuple[str, ...] = (
    "Receive legal documents and official correspondence",
    "Scan and digitize all received documents",
    "Immediate email and dashboard notifications",
    "Secure document storage and forwarding",
    "Annual report reminders and compliance alerts",
    "Professional business address in state of registration",
    "Regular business hours availability (9 AM - 5 PM EST)",
)


@dataclass(frozen=True, slots=True)
class AgentAddressSeed:
    """Curated registered agent address for one state.

    Attributes:
        state: Full state name (e.g., "Delaware").
        street_address: Street line including suite.
        city: City name.
        zip_code: Postal code.
        phone_number: Agent office phone number.
        business_hours: Office hours shown to clients.
    """

    state: str
    street_address: str
    city: str
    zip_code: str
    phone_number: str
    business_hours: str = DEFAULT_BUSINESS_HOURS

    @property
    def formatted_address(self) -> str:
        """Single-line mailing address."""
        return f"{self.street_address}, {self.city}, {self.state} {self.zip_code}"


def _seed_table(seeds: list[AgentAddressSeed]) -> Mapping[str, AgentAddressSeed]:
    return MappingProxyType({seed.state: seed for seed in seeds})


DEFAULT_AGENT_ADDRESSES: Mapping[str, AgentAddressSeed] = _seed_table(
    [
        AgentAddressSeed(
            state="Delaware",
            street_address="1013 Centre Road, Suite 403-B",
            city="Wilmington",
            zip_code="19805",
            phone_number="(302) 123-4567",
        ),
        AgentAddressSeed(
            state="California",
            street_address="2035 Sunset Lake Road, Suite B-2",
            city="Newark",
            zip_code="19702",
            phone_number="(510) 123-4567",
        ),
        AgentAddressSeed(
            state="New York",
            street_address="28 Liberty Street, 6th Floor",
            city="New York",
            zip_code="10005",
            phone_number="(212) 123-4567",
        ),
        AgentAddressSeed(
            state="Texas",
            street_address="1999 Bryan Street, Suite 900",
            city="Dallas",
            zip_code="75201",
            phone_number="(214) 123-4567",
        ),
        AgentAddressSeed(
            state="Florida",
            street_address="1 East Broward Boulevard, Suite 700",
            city="Fort Lauderdale",
            zip_code="33301",
            phone_number="(954) 123-4567",
        ),
        AgentAddressSeed(
            state="Nevada",
            street_address="2310 Corporate Circle, Suite 200",
            city="Henderson",
            zip_code="89074",
            phone_number="(702) 123-4567",
        ),
        AgentAddressSeed(
            state="Wyoming",
            street_address="30 N. Gould Street, Suite R",
            city="Sheridan",
            zip_code="82801",
            phone_number="(307) 123-4567",
        ),
    ]
)


class UnsupportedStateError(Exception):
    """Raised when no registered agent address is offered in a state."""

    def __init__(self, state: str, requested: str | None = None) -> None:
        self.state = state
        self.requested = requested if requested is not None else state
        super().__init__(
            f"Registered agent service not available in {state} (requested: {self.requested})"
        )


class AgentAddressInactiveError(UnsupportedStateError):
    """Raised when the agent address for a state has been deactivated."""

    def __init__(self, state: str) -> None:
        super().__init__(state)
        self.args = (f"Registered agent service is suspended in {state}",)


@dataclass(frozen=True, slots=True)
class AgentInfo:
    """Public description of the registered agent offering in a state.

    Attributes:
        agent_name: Organizational name of the agent.
        state: Normalized state name.
        address: Seed address, or None if the state is not served.
        annual_fee: Annual subscription fee in USD.
        setup_fee: One-time setup fee in USD.
        services: Services included in the subscription.
    """

    agent_name: str
    state: str
    address: AgentAddressSeed | None
    annual_fee: int
    setup_fee: int
    services: tuple[str, ...]

    @property
    def available(self) -> bool:
        return self.address is not None


def load_seed_file(path: Path) -> Mapping[str, AgentAddressSeed]:
    """Load an agent address table from a JSON file.

    The file holds a list of objects with the AgentAddressSeed fields;
    business_hours is optional.

    Raises:
        ConfigValidationError: If the file is unreadable or malformed.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigValidationError(
            f"Cannot read agent address seed file {path}: {e}",
            field="agent.seed_file",
        ) from e

    if not isinstance(raw, list) or not raw:
        raise ConfigValidationError(
            f"Agent address seed file {path} must contain a non-empty list",
            field="agent.seed_file",
        )

    seeds = []
    for index, item in enumerate(raw):
        try:
            seeds.append(AgentAddressSeed(**item))
        except TypeError as e:
            raise ConfigValidationError(
                f"Invalid agent address entry #{index} in {path}: {e}",
                field="agent.seed_file",
            ) from e

    logger.info("Loaded %d agent addresses from %s", len(seeds), path)
    return _seed_table(seeds)


class AgentRegistryService:
    """Registry of registered agent addresses, one per supported state.

    Attributes:
        session: SQLAlchemy async session for database operations.
    """

    def __init__(
        self,
        session: AsyncSession,
        seeds: Mapping[str, AgentAddressSeed] | None = None,
        *,
        agent_name: str = DEFAULT_AGENT_NAME,
        annual_fee: int = 199,
        setup_fee: int = 0,
    ) -> None:
        self._session = session
        self._seeds = seeds if seeds is not None else DEFAULT_AGENT_ADDRESSES
        self._agent_name = agent_name
        self._annual_fee = annual_fee
        self._setup_fee = setup_fee

    @property
    def agent_name(self) -> str:
        return self._agent_name

    def normalize_state(self, state: str) -> str:
        """Map user input to a full state name.

        Two-letter abbreviations and full names are both matched
        case-insensitively; unknown input is returned trimmed.
        """
        cleaned = state.strip()
        abbreviation = STATE_ABBREVIATIONS.get(cleaned.upper())
        if abbreviation is not None:
            return abbreviation
        for known in self._seeds:
            if known.casefold() == cleaned.casefold():
                return known
        return cleaned

    def list_supported_states(self) -> list[str]:
        """Return the states with a seeded agent address, sorted by name."""
        return sorted(self._seeds)

    def get_seed(self, state: str) -> AgentAddressSeed | None:
        return self._seeds.get(self.normalize_state(state))

    def get_agent_info(self, state: str) -> AgentInfo:
        """Describe the offering (address, pricing, services) for a state."""
        normalized = self.normalize_state(state)
        return AgentInfo(
            agent_name=self._agent_name,
            state=normalized,
            address=self._seeds.get(normalized),
            annual_fee=self._annual_fee,
            setup_fee=self._setup_fee,
            services=INCLUDED_SERVICES,
        )

    async def get_or_create_address(self, state: str) -> RegisteredAgentAddress:
        """Return the durable agent address row for a state.

        The row is created from the seed table on first use. Concurrent
        first requests insert at most one row (unique state column).

        Args:
            state: Full state name or two-letter abbreviation.

        Returns:
            The registered agent address for the state.

        Raises:
            UnsupportedStateError: If the state has no seeded address.
        """
        from regagent.db.models.agents import RegisteredAgentAddress

        normalized = self.normalize_state(state)

        existing = await self._find_address(normalized)
        if existing is not None:
            return existing

        seed = self._seeds.get(normalized)
        if seed is None:
            logger.warning(
                "Registered agent address requested for unsupported state",
                extra={"state": normalized, "requested": state},
            )
            raise UnsupportedStateError(normalized, requested=state)

        now = datetime.now(UTC)
        stmt = (
            pg_insert(RegisteredAgentAddress)
            .values(**asdict(seed), is_active=True, verified_date=now)
            .on_conflict_do_nothing(index_elements=["state"])
        )
        await self._session.execute(stmt)

        result = await self._session.execute(
            select(RegisteredAgentAddress).where(RegisteredAgentAddress.state == normalized)
        )
        address = result.scalar_one()

        logger.info(
            "Registered agent address provisioned",
            extra={"state": normalized, "address_id": str(address.address_id)},
        )
        return address

    async def deactivate_address(self, state: str) -> RegisteredAgentAddress | None:
        """Mark the agent address for a state inactive.

        Returns:
            The updated address, or None if it was never provisioned.

        Raises:
            UnsupportedStateError: If the state has no seeded address.
        """
        normalized = self.normalize_state(state)
        if normalized not in self._seeds:
            raise UnsupportedStateError(normalized, requested=state)

        address = await self._find_address(normalized)
        if address is None:
            return None

        address.is_active = False
        address.updated_at = datetime.now(UTC)
        await self._session.flush()

        logger.info("Registered agent address deactivated", extra={"state": normalized})
        return address

    async def _find_address(self, state: str) -> RegisteredAgentAddress | None:
        from regagent.db.models.agents import RegisteredAgentAddress

        result = await self._session.execute(
            select(RegisteredAgentAddress).where(RegisteredAgentAddress.state == state)
        )
        return result.scalar_one_or_none()
