from datetime import date

import pytest

from occupancy.core.errors import DuplicateCpfError, NotFoundError, ValidationError
from occupancy.models.enums import ResidentRelationship
from occupancy.repositories.residents import ResidentRepository


@pytest.fixture
def residents(db):
    return ResidentRepository(db)


def add(residents, unit, cpf, **fields):
    data = {"name": fields.pop("name", f"Morador {cpf[-2:]}"), "cpf": cpf}
    data.update(fields)
    return residents.add_resident(unit.id, data)


def test_add_resident_is_active_and_not_main(residents, vacant_unit):
    resident = add(residents, vacant_unit, "00000000001")
    assert resident.is_active is True
    assert resident.is_main_resident is False
    assert resident.relationship_type == ResidentRelationship.FAMILY


def test_cpf_is_unique_across_units(residents, make_unit):
    first, second = make_unit(), make_unit()
    add(residents, first, "00000000001")
    with pytest.raises(DuplicateCpfError) as exc:
        add(residents, second, "00000000001")
    assert exc.value.cpf == "00000000001"


def test_cpf_stays_taken_after_move_out(residents, vacant_unit):
    resident = add(residents, vacant_unit, "00000000001")
    residents.deactivate_resident(resident.id, date(2024, 6, 30))
    with pytest.raises(DuplicateCpfError) as exc:
        add(residents, vacant_unit, "00000000001")
    assert exc.value.existing_resident_id == resident.id


@pytest.mark.parametrize("cpf", ["123", "123456789012", ""])
def test_malformed_cpf(residents, vacant_unit, cpf):
    with pytest.raises(ValidationError):
        add(residents, vacant_unit, cpf)


def test_main_resident_flag_cannot_be_passed_on_add(residents, vacant_unit):
    with pytest.raises(ValidationError):
        add(residents, vacant_unit, "00000000001", is_main_resident=True)


def test_set_main_clears_the_others(residents, vacant_unit):
    a = add(residents, vacant_unit, "00000000001")
    b = add(residents, vacant_unit, "00000000002")
    residents.set_main_resident(vacant_unit.id, a.id)
    resident, before = residents.set_main_resident(vacant_unit.id, b.id)

    assert before["is_main_resident"] is False
    assert resident.is_main_resident is True
    assert a.is_main_resident is False
    assert residents.get_main_resident(vacant_unit.id) is b


def test_set_main_rejects_other_unit_and_inactive(residents, make_unit):
    unit, other = make_unit(), make_unit()
    resident = add(residents, unit, "00000000001")
    with pytest.raises(ValidationError):
        residents.set_main_resident(other.id, resident.id)
    residents.deactivate_resident(resident.id, date(2024, 1, 1))
    with pytest.raises(ValidationError):
        residents.set_main_resident(unit.id, resident.id)


def test_deactivating_main_leaves_unit_without_main(residents, vacant_unit):
    a = add(residents, vacant_unit, "00000000001")
    add(residents, vacant_unit, "00000000002")
    residents.set_main_resident(vacant_unit.id, a.id)

    resident, before = residents.deactivate_resident(a.id, date(2024, 6, 30))

    assert before["is_main_resident"] is True
    assert resident.is_active is False
    assert resident.move_out_date == date(2024, 6, 30)
    assert residents.get_main_resident(vacant_unit.id) is None
    assert residents.count_active(vacant_unit.id) == 1


def test_deactivate_twice_rejected(residents, vacant_unit):
    resident = add(residents, vacant_unit, "00000000001")
    residents.deactivate_resident(resident.id, date(2024, 6, 30))
    with pytest.raises(ValidationError):
        residents.deactivate_resident(resident.id, date(2024, 7, 1))


def test_move_out_before_move_in_rejected(residents, vacant_unit):
    resident = add(residents, vacant_unit, "00000000001", move_in_date=date(2024, 3, 1))
    with pytest.raises(ValidationError):
        residents.deactivate_resident(resident.id, date(2024, 2, 1))


def test_reactivate(residents, vacant_unit):
    resident = add(residents, vacant_unit, "00000000001")
    residents.deactivate_resident(resident.id, date(2024, 6, 30))
    resident, before = residents.reactivate_resident(resident.id)
    assert before["is_active"] is False
    assert resident.is_active is True
    assert resident.move_out_date is None


def test_update_resident_cpf_uniqueness(residents, vacant_unit):
    a = add(residents, vacant_unit, "00000000001")
    add(residents, vacant_unit, "00000000002")
    with pytest.raises(DuplicateCpfError):
        residents.update_resident(a.id, {"cpf": "00000000002"})
    # Re-saving its own CPF is fine
    resident, before = residents.update_resident(a.id, {"cpf": "00000000001", "phone": "11999990000"})
    assert resident.phone == "11999990000"
    assert before["phone"] is None


def test_update_resident_rejects_flag_fields(residents, vacant_unit):
    resident = add(residents, vacant_unit, "00000000001")
    for field in ("is_active", "is_main_resident", "unit_id"):
        with pytest.raises(ValidationError):
            residents.update_resident(resident.id, {field: True})


def test_list_residents_main_first(residents, vacant_unit):
    guest = add(residents, vacant_unit, "00000000001", name="Zeca", relationship_type=ResidentRelationship.GUEST)
    owner = add(residents, vacant_unit, "00000000002", name="Bia", relationship_type=ResidentRelationship.OWNER)
    gone = add(residents, vacant_unit, "00000000003", name="Ana")
    residents.set_main_resident(vacant_unit.id, guest.id)
    residents.deactivate_resident(gone.id, date(2024, 1, 1))

    assert residents.list_residents(vacant_unit.id) == [guest, owner]
    assert gone in residents.list_residents(vacant_unit.id, include_inactive=True)


def test_unknown_resident(residents):
    with pytest.raises(NotFoundError):
        residents.get_resident(42)
