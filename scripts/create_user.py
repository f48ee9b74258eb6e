"""Utility script to register a notification recipient in the database."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from notifier.domain.entities import User
from notifier.infrastructure.database import SessionLocal, initialize_database
from notifier.infrastructure.repositories import UserRepository


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a user that notifications can be addressed to.",
    )
    parser.add_argument("--name", required=True, help="Nombre completo del usuario")
    parser.add_argument("--email", default=None, help="Correo electrónico (opcional)")
    parser.add_argument("--phone", default=None, help="Teléfono en formato E.164 (opcional)")
    return parser.parse_args()


def main() -> None:
    """Create a user using the provided command line arguments."""

    args = parse_args()
    if args.email is not None and "@" not in args.email:
        raise SystemExit("El correo electrónico no es válido.")

    initialize_database()

    session = SessionLocal()
    try:
        user = UserRepository(session).create(
            User(id=None, name=args.name, email=args.email, phone=args.phone)
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Error al guardar el usuario en la base de datos: {exc}") from exc
    else:
        print(
            "Usuario creado exitosamente:\n"
            f"  ID: {user.id}\n"
            f"  Nombre: {user.name}\n"
            f"  Email: {user.email or '-'}\n"
            f"  Teléfono: {user.phone or '-'}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
