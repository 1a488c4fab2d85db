import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from clinic_scheduling.auth import jwt_handler
from clinic_scheduling.auth.dependencies import get_current_user
from clinic_scheduling.core import config
from clinic_scheduling.models.clinic import Clinic
from clinic_scheduling.models.user import User
from clinic_scheduling.routes.auth_routes import me


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


@pytest.fixture
def staff_user(db_session):
    clinic = Clinic(name='Downtown Clinic')
    db_session.add(clinic)
    db_session.commit()

    user = User(email='front.desk@downtown.example', role='staff', clinic_id=clinic.id)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def test_access_token_round_trip_keeps_clinic() -> None:
    token = jwt_handler.create_access_token('front.desk@downtown.example', clinic_id=7)

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == 'front.desk@downtown.example'
    assert payload['clinic_id'] == 7


def test_get_current_user_returns_user_for_valid_token(db_session, staff_user) -> None:
    token = jwt_handler.create_access_token(staff_user.email)

    user = get_current_user(credentials=_credentials(token), db=db_session)

    assert user.id == staff_user.id
    assert me(current_user=user) == {
        'email': 'front.desk@downtown.example',
        'role': 'staff',
        'clinic_id': staff_user.clinic_id,
    }


def test_get_current_user_rejects_tampered_token(db_session) -> None:
    token = jwt.encode({'sub': 'someone@example.com'}, 'not-the-secret', algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(token), db=db_session)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_rejects_token_without_subject(db_session) -> None:
    token = jwt.encode({'clinic_id': 1}, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(token), db=db_session)

    assert exception_info.value.detail == 'Invalid token subject'


def test_get_current_user_rejects_unknown_user(db_session) -> None:
    token = jwt_handler.create_access_token('ghost@example.com')

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(token), db=db_session)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'User not found'


def test_get_current_user_requires_clinic_membership(db_session) -> None:
    db_session.add(User(email='orphan@example.com', role='staff'))
    db_session.commit()
    token = jwt_handler.create_access_token('orphan@example.com')

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=_credentials(token), db=db_session)

    assert exception_info.value.status_code == 403
