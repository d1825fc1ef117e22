import argparse
import getpass

import psycopg2
from dotenv import load_dotenv
from passlib.hash import bcrypt

from portal.config import load_portal_config


def main():
    load_dotenv()
    parser = argparse.ArgumentParser(description="Create a portal user.")
    parser.add_argument("--role", choices=["user", "manager", "admin"], default=None)
    args = parser.parse_args()

    email = input("Email: ").strip().lower()
    password = getpass.getpass("Password: ")
    if len(password) < 6:
        raise SystemExit("Password must be at least 6 characters")
    pw_hash = bcrypt.hash(password)

    config = load_portal_config()
    with psycopg2.connect(**config.database.connect_kwargs()) as conn, conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO users (email, password_hash, role)
            VALUES (%s, %s, %s)
            ON CONFLICT (LOWER(email)) DO NOTHING
            """,
            (email, pw_hash, args.role),
        )
        conn.commit()
    print("Done. (If the email existed already, it was unchanged.)")


if __name__ == "__main__":
    main()
