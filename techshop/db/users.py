# techshop/db/users.py
import secrets
import string
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from techshop.auth_utils import hash_password, verify_password
from techshop.db.models import AccountType, Order, OrderItem, Product, RoleEnum, User
from techshop.db.results import OpResult, ok, fail, STORE_ERROR, USER_NOT_FOUND
from techshop.logging_config import get_logger
from techshop.validators import normalize_identifier, validate_cif_or_nif, validate_dni_or_nie

log = get_logger(__name__)

INVALID_DNI = "Invalid DNI/NIE. Expected 8 digits + letter (DNI) or X/Y/Z + 7 digits + letter (NIE)"
INVALID_NIF = "Invalid NIF. Expected letter + 7 digits + control character"
INVALID_CREDENTIALS = "Incorrect username or password"
INVALID_ACCOUNT_TYPE = "Account type must be 'user' or 'company'"
INVALID_ROLE = "Role must be 'common' or 'admin'"


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).filter(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.username == username))
    return result.scalar_one_or_none()


# A buyer is an individual account; companies only sell
async def get_buyer(db: AsyncSession, user_id: int) -> Optional[User]:
    if user_id is None:
        return None
    result = await db.execute(
        select(User).filter(User.id == user_id, User.account_type == AccountType.user)
    )
    return result.scalar_one_or_none()


def _check_profile_fields(username: str, email: str) -> Optional[str]:
    username = (username or "").strip()
    if len(username) < 4 or len(username) > 20:
        return "Username must be between 4 and 20 characters"
    email = (email or "").strip()
    if "@" not in email or "." not in email.split("@")[-1]:
        return "Invalid email address"
    return None


def _check_password(password: str) -> Optional[str]:
    if not password or len(password) < 8:
        return "Password must be at least 8 characters long"
    if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
        return "Password must contain at least one letter and one number"
    return None


async def _taken(db: AsyncSession, column, value, exclude_id: int = 0) -> bool:
    result = await db.execute(select(User.id).filter(column == value, User.id != exclude_id))
    return result.first() is not None


async def _find_conflict(db: AsyncSession, username: str, email: str, dni: str, nif: str,
                         exclude_id: int = 0) -> Optional[str]:
    if await _taken(db, User.username, username, exclude_id):
        return "This username is already in use"
    if await _taken(db, User.email, email, exclude_id):
        return "This email is already in use"
    if dni and await _taken(db, User.dni, dni, exclude_id):
        return "This DNI/NIE is already registered to another account"
    if nif and await _taken(db, User.nif, nif, exclude_id):
        return "This NIF/CIF is already registered to another account"
    return None


async def create_user(db: AsyncSession, username: str, password: str, email: str, address: str = "",
                      account_type: AccountType = AccountType.user, dni: str = "", nif: str = "",
                      role: RoleEnum = RoleEnum.common) -> OpResult:
    """
    Register an account. Value on success: the new `User`.

    Individuals must give a valid DNI/NIE and companies a valid CIF.
    """
    try:
        account_type = AccountType(account_type)
    except ValueError:
        return fail(INVALID_ACCOUNT_TYPE)
    try:
        role = RoleEnum(role)
    except ValueError:
        return fail(INVALID_ROLE)

    error = _check_profile_fields(username, email) or _check_password(password)
    if error:
        return fail(error)

    if account_type == AccountType.company:
        if not validate_cif_or_nif(nif):
            return fail(INVALID_NIF)
        dni, nif = "", normalize_identifier(nif)
    else:
        if not validate_dni_or_nie(dni):
            return fail(INVALID_DNI)
        dni, nif = normalize_identifier(dni), ""

    username, email = username.strip(), email.strip()
    try:
        conflict = await _find_conflict(db, username, email, dni, nif)
        if conflict:
            return fail(conflict)

        db_user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            address=(address or "").strip(),
            role=role,
            account_type=account_type,
            dni=dni or None,
            nif=nif or None,
        )
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not create user %r", username)
        return fail(STORE_ERROR)

    log.info("User %s registered as %s", db_user.id, account_type.value)
    return ok("User created", db_user)


async def authenticate_user(db: AsyncSession, username: str, password: str) -> OpResult:
    try:
        user = await get_user_by_username(db, (username or "").strip())
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not authenticate %r", username)
        return fail(STORE_ERROR)

    if user is None or not verify_password(password or "", user.password_hash):
        return fail(INVALID_CREDENTIALS)
    return ok("Authenticated", user)


async def update_user_profile(db: AsyncSession, user_id: int, username: str, email: str, address: str = "",
                              dni: str = "", nif: str = "") -> OpResult:
    """Update contact data and the identity number that matches the account type."""
    error = _check_profile_fields(username, email)
    if error:
        return fail(error)

    try:
        user = await get_user_by_id(db, user_id)
        if user is None:
            return fail(USER_NOT_FOUND)

        # Identity numbers are optional on edit but must be valid when given
        if user.is_company():
            if nif and not validate_cif_or_nif(nif):
                return fail(INVALID_NIF)
            dni, nif = "", normalize_identifier(nif)
        else:
            if dni and not validate_dni_or_nie(dni):
                return fail(INVALID_DNI)
            dni, nif = normalize_identifier(dni), ""

        username, email = username.strip(), email.strip()
        conflict = await _find_conflict(db, username, email, dni, nif, exclude_id=user.id)
        if conflict:
            return fail(conflict)

        user.username = username
        user.email = email
        user.address = (address or "").strip()
        # A blank identity number keeps the stored one
        if user.is_company():
            user.nif = nif or user.nif
        else:
            user.dni = dni or user.dni
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not update profile of user %s", user_id)
        return fail(STORE_ERROR)

    return ok("Profile updated", user)


def generate_password(length: int = 12) -> str:
    """Random letters and digits with at least one of each."""
    alphabet = string.ascii_letters + string.digits
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(length))
        if _check_password(password) is None:
            return password


async def _set_password(db: AsyncSession, user_id: int, password: str) -> None:
    await db.execute(update(User).where(User.id == user_id).values(password_hash=hash_password(password)))


# Fields an account still has to fill in before buying or selling
async def check_missing_required_data(db: AsyncSession, user_id: int) -> Tuple[bool, List[str]]:
    try:
        user = await get_user_by_id(db, user_id)
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not check profile of user %s", user_id)
        return True, ["verification_error"]

    if user is None:
        return True, ["user_not_found"]

    missing = []
    if not (user.email or "").strip():
        missing.append("email")
    if not (user.address or "").strip():
        missing.append("address")
    if user.is_company() and not (user.nif or "").strip():
        missing.append("nif")
    return bool(missing), missing


async def reset_password_by_dni_and_email(db: AsyncSession, dni: str, email: str) -> OpResult:
    """
    Give an individual a new random password when DNI/NIE and email both match.

    Value on success: the new password, for the caller to deliver.
    """
    if not validate_dni_or_nie(dni):
        return fail("Invalid DNI/NIE")
    email = (email or "").strip()
    if "@" not in email or "." not in email.split("@")[-1]:
        return fail("Invalid email address")

    try:
        result = await db.execute(
            select(User).filter(User.dni == normalize_identifier(dni), func.lower(User.email) == email.lower())
        )
        user = result.scalar_one_or_none()
        if user is None:
            return fail("No account matches this DNI/NIE and email")

        new_password = generate_password()
        await _set_password(db, user.id, new_password)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not reset password by DNI")
        return fail(STORE_ERROR)

    log.info("Password reset by DNI and email for user %s", user.id)
    return ok("Password reset", new_password)


async def _delete_account_rows(db: AsyncSession, user_id: int) -> None:
    # Products of a deleted company stay in the catalog without an owner
    await db.execute(update(Product).where(Product.company_id == user_id).values(company_id=None))
    await db.execute(delete(User).where(User.id == user_id))


# Self-service account removal, order history included
async def delete_user_account(db: AsyncSession, user_id: int) -> OpResult:
    try:
        if await get_user_by_id(db, user_id) is None:
            return fail(USER_NOT_FOUND)

        order_ids = select(Order.id).filter(Order.user_id == user_id)
        await db.execute(delete(OrderItem).where(OrderItem.order_id.in_(order_ids)))
        await db.execute(delete(Order).where(Order.user_id == user_id))
        await _delete_account_rows(db, user_id)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not delete account %s", user_id)
        return fail(STORE_ERROR)

    log.info("Account %s deleted by its owner", user_id)
    return ok("Account deleted", user_id)


# Admin panel

async def get_all_users(db: AsyncSession) -> List[User]:
    try:
        result = await db.execute(select(User).order_by(User.id))
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not list users")
        return []
    return list(result.scalars().all())


async def admin_create_user(db: AsyncSession, username: str, email: str, address: str = "",
                            role: RoleEnum = RoleEnum.common, account_type: AccountType = AccountType.user,
                            dni: str = "", nif: str = "") -> OpResult:
    """Create an account with a generated password. Value: `(user, password)`."""
    password = generate_password()
    result = await create_user(db, username, password, email, address,
                               account_type=account_type, dni=dni, nif=nif, role=role)
    if not result.success:
        return result
    return ok(result.message, (result.value, password))


async def admin_update_user(db: AsyncSession, user_id: int, username: str, email: str, address: str = "",
                            role: RoleEnum = RoleEnum.common) -> OpResult:
    """Contact data and role; the account type never changes."""
    try:
        role = RoleEnum(role)
    except ValueError:
        return fail(INVALID_ROLE)
    error = _check_profile_fields(username, email)
    if error:
        return fail(error)

    username, email = username.strip(), email.strip()
    try:
        user = await get_user_by_id(db, user_id)
        if user is None:
            return fail(USER_NOT_FOUND)
        conflict = await _find_conflict(db, username, email, "", "", exclude_id=user.id)
        if conflict:
            return fail(conflict)

        user.username = username
        user.email = email
        user.address = (address or "").strip()
        user.role = role
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not update user %s", user_id)
        return fail(STORE_ERROR)

    return ok("User updated", user)


async def reset_user_password(db: AsyncSession, user_id: int) -> OpResult:
    """Value on success: the new generated password."""
    try:
        if await get_user_by_id(db, user_id) is None:
            return fail(USER_NOT_FOUND)
        new_password = generate_password()
        await _set_password(db, user_id, new_password)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not reset password of user %s", user_id)
        return fail(STORE_ERROR)

    log.info("Password of user %s reset by an administrator", user_id)
    return ok("Password reset", new_password)


async def delete_user(db: AsyncSession, user_id: int) -> OpResult:
    """Admin deletion, refused while the user has orders."""
    try:
        if await get_user_by_id(db, user_id) is None:
            return fail(USER_NOT_FOUND)
        orders = (await db.execute(select(func.count(Order.id)).filter(Order.user_id == user_id))).scalar_one()
        if orders > 0:
            return fail(f"The user cannot be deleted because they have {orders} order(s)")

        await _delete_account_rows(db, user_id)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("Could not delete user %s", user_id)
        return fail(STORE_ERROR)

    log.info("User %s deleted", user_id)
    return ok("User deleted", user_id)
