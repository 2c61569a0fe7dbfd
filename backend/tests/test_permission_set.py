import pytest
from approvals.constants.permissions import CAPABILITIES, MANAGE_COURSES, APPROVE_APPLICATIONS, REJECT_APPLICATIONS
from approvals.errors import InvalidCapability, ValidationError
from approvals.services.permissions import PermissionSet


def test_absent_flags_default_to_false():
    ps = PermissionSet.of(MANAGE_COURSES)
    assert ps.has(MANAGE_COURSES) is True
    assert ps.has(APPROVE_APPLICATIONS) is False
    assert PermissionSet.none().granted() == []


def test_full_access_overrides_stored_flags():
    ps = PermissionSet({APPROVE_APPLICATIONS: False}, full_access=True)
    for cap in CAPABILITIES:
        assert ps.has(cap)
    assert ps.granted() == list(CAPABILITIES)


def test_unknown_capability_raises():
    with pytest.raises(InvalidCapability):
        PermissionSet.none().has('launch_rockets')
    with pytest.raises(InvalidCapability):
        PermissionSet({'launch_rockets': True})
    with pytest.raises(InvalidCapability) as exc:
        PermissionSet.from_dict({'manage_course': True})
    assert exc.value.status == 400
    assert "manage_course" in exc.value.detail


def test_transformations_return_new_values():
    base = PermissionSet.of(MANAGE_COURSES)
    full = base.grant_full_access()
    assert full is not base
    assert full.full_access and not base.full_access
    # writing a single flag clears full access
    narrowed = full.set_flag(REJECT_APPLICATIONS, True)
    assert narrowed.full_access is False
    assert narrowed.has(MANAGE_COURSES) and narrowed.has(REJECT_APPLICATIONS)
    assert not narrowed.has(APPROVE_APPLICATIONS)
    assert base.has(REJECT_APPLICATIONS) is False


def test_flags_are_read_only():
    ps = PermissionSet.of(MANAGE_COURSES)
    with pytest.raises(TypeError):
        ps.flags[MANAGE_COURSES] = False  # type: ignore[index]


def test_dict_round_trip_keeps_full_vocabulary():
    doc = PermissionSet.of(MANAGE_COURSES).to_dict()
    assert set(doc) == set(CAPABILITIES) | {'full_access'}
    assert doc[MANAGE_COURSES] is True and doc['full_access'] is False
    assert PermissionSet.from_dict(doc).granted() == [MANAGE_COURSES]


def test_from_dict_rejects_non_objects():
    with pytest.raises(ValidationError):
        PermissionSet.from_dict(['manage_courses'])
    assert PermissionSet.from_dict(None) == PermissionSet.none()


def test_flag_values_must_be_real_booleans():
    with pytest.raises(ValidationError) as exc:
        PermissionSet.from_dict({'full_access': 'false', MANAGE_COURSES: 'false'})
    assert exc.value.status == 400
    with pytest.raises(ValidationError):
        PermissionSet.from_dict({MANAGE_COURSES: 1})
    with pytest.raises(ValidationError):
        PermissionSet.of(MANAGE_COURSES).set_flag(APPROVE_APPLICATIONS, 'yes')
    assert PermissionSet.from_dict({MANAGE_COURSES: False, 'full_access': False}).granted() == []
