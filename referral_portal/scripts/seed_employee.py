from __future__ import annotations

import argparse
import asyncio
import getpass

from referral_portal.core.roles import Role
from referral_portal.core.security import hash_password
from referral_portal.db.session import SessionLocal, create_all
from referral_portal.models.employee import Employee
from referral_portal.services.identity import find_employee


async def _run(employee_code: str, name: str, email: str, role: Role, password: str) -> None:
    await create_all()
    async with SessionLocal() as session:
        employee = await find_employee(session, email) or await find_employee(session, employee_code)
        if employee is None:
            employee = Employee(employee_code=employee_code, email=email)
            session.add(employee)
        employee.name = name
        employee.role = role.value
        employee.password_hash = hash_password(password)
        employee.is_active = True
        await session.commit()
        print(f"Employee ensured: {employee_code} <{email}> role={role.value}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or update a portal employee.")
    parser.add_argument("--employee-code", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--role", choices=[r.value for r in Role], default=Role.EMPLOYEE.value)
    parser.add_argument("--password", default=None, help="Prompted for when omitted.")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if not password:
        raise SystemExit("Password must not be empty.")
    asyncio.run(
        _run(
            args.employee_code.strip(),
            args.name.strip(),
            args.email.strip().lower(),
            Role(args.role),
            password,
        )
    )


if __name__ == "__main__":
    main()
