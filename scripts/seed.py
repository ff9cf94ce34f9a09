#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv()

from app.config import AppSettings, configure_logging
from app.security import password_fits_bcrypt, password_meets_policy
from app.seed import seed_store
from app.store import store


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the default admin, a sample agent and starter products")
    parser.add_argument("--admin-password", default="Admin@123456", help="password for the seeded admin")
    parser.add_argument("--agent-password", default="Agent@123456", help="password for the seeded agent")
    args = parser.parse_args()

    for label, value in (("admin", args.admin_password), ("agent", args.agent_password)):
        if not (password_meets_policy(value) and password_fits_bcrypt(value)):
            print(f"{label} password does not meet the password policy", file=sys.stderr)
            return 2

    configure_logging(AppSettings.from_env())
    summary = seed_store(store, admin_password=args.admin_password, agent_password=args.agent_password)
    summary["store_backend"] = store.backend_name
    print(json.dumps(summary, ensure_ascii=True, sort_keys=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
