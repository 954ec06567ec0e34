import itertools
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from occupancy.core.database import build_engine, init_db
from occupancy.models import Condominium, Unit, User
from occupancy.models.enums import UnitStatus, UnitType
from occupancy.schemas.resident import ResidentCreate
from occupancy.services.occupancy import OccupancyCoordinator

# Valid CPFs (check digits included) for owner / guarantor fields
VALID_CPF = "52998224725"
OTHER_VALID_CPF = "11144477735"


# --- Fixtures ---

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test, foreign keys enforced."""
    engine = build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def condominium(db):
    condo = Condominium(name="Residencial Aurora")
    db.add(condo)
    db.commit()
    return condo


@pytest.fixture
def manager(db):
    user = User(name="Sindica Ana", email="ana@example.com")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_unit(db, condominium):
    numbers = itertools.count(101)

    def _make(**overrides):
        fields = dict(
            condominium_id=condominium.id,
            number=str(next(numbers)),
            block="A",
            type=UnitType.APARTMENT,
            status=UnitStatus.VACANT,
            condominium_fee=Decimal("450.00"),
        )
        fields.update(overrides)
        unit = Unit(**fields)
        db.add(unit)
        db.commit()
        return unit

    return _make


@pytest.fixture
def vacant_unit(make_unit):
    return make_unit()


@pytest.fixture
def resident_data():
    """Factory of ResidentCreate payloads with distinct CPFs."""
    cpfs = itertools.count(1)

    def _make(**overrides):
        n = next(cpfs)
        fields = dict(name=f"Morador {n}", cpf=f"{n:011d}", relationship="family")
        fields.update(overrides)
        return ResidentCreate(**fields)

    return _make


@pytest.fixture
def coordinator(db):
    return OccupancyCoordinator(db)
