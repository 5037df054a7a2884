"""Authorization guards backed by the account record.

Every workflow resolves the caller through these helpers inside its own unit of
work; tokens and cached fields are never consulted for role or status.
"""

from __future__ import annotations

from typing import Iterable, Optional

from clubconnect.domain.errors import Forbidden
from clubconnect.domain.identity.models import (
	RESTRICTED,
	STUDENT_PARTICIPATING,
	Account,
	AccountStatus,
	Role,
)
from clubconnect.domain.store import UnitOfWork


async def require_account(
	uow: UnitOfWork,
	caller_id: str,
	*,
	roles: Optional[Iterable[Role]] = None,
	statuses: Optional[Iterable[AccountStatus]] = None,
	for_update: bool = False,
	reason: Optional[str] = None,
) -> Account:
	account = await uow.get_account(caller_id, for_update=for_update)
	if account is None:
		raise Forbidden("account_not_registered")
	if roles is not None and account.role not in set(roles):
		raise Forbidden(reason or "role_not_permitted")
	if statuses is not None and account.status not in set(statuses):
		if account.status in RESTRICTED:
			raise Forbidden("account_restricted")
		raise Forbidden(reason or "status_not_permitted")
	return account


async def require_admin(uow: UnitOfWork, caller_id: str) -> Account:
	return await require_account(
		uow,
		caller_id,
		roles=(Role.ADMIN,),
		statuses=(AccountStatus.ACTIVE,),
		reason="admin_required",
	)


async def require_active_alumni(uow: UnitOfWork, caller_id: str, *, reason: str = "active_alumni_required") -> Account:
	return await require_account(
		uow,
		caller_id,
		roles=(Role.ALUMNI,),
		statuses=(AccountStatus.ACTIVE,),
		reason=reason,
	)


async def require_student(uow: UnitOfWork, caller_id: str) -> Account:
	return await require_account(
		uow,
		caller_id,
		roles=(Role.STUDENT,),
		statuses=STUDENT_PARTICIPATING,
		reason="student_required",
	)


async def require_participant(uow: UnitOfWork, caller_id: str) -> Account:
	"""Any registered account that is not suspended or blocked."""
	account = await require_account(uow, caller_id)
	if account.status in RESTRICTED:
		raise Forbidden("account_restricted")
	return account


def is_active_admin(account: Account) -> bool:
	return account.role is Role.ADMIN and account.status is AccountStatus.ACTIVE
