#!/usr/bin/env python3
"""
check_email.py - Carlora email system self-test

Verifies the SMTP connection and sends one test message to SMTP_USER using the
same EmailService the API uses. Exits non-zero when either step fails.

Usage:
    python scripts/check_email.py
    python scripts/check_email.py --env-file .env.production
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def main() -> int:
    parser = argparse.ArgumentParser(description="Test the outbound email system")
    parser.add_argument("--env-file", default=None, help="Alternate .env file to load")
    args = parser.parse_args()

    from app.core.config import Settings
    from app.services.email_service import EmailService

    settings = Settings(_env_file=args.env_file) if args.env_file else Settings()
    if settings.simulate_email:
        print("Warning: ENVIRONMENT=development only simulates delivery")

    service = EmailService.from_settings(settings)
    print("Testing email system...")
    try:
        result = asyncio.run(service.test_connection())
    finally:
        service.close()

    print("\nTest Results:")
    print("-------------")
    print(f"Success: {result.success}")
    print(f"Message: {result.message}")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
