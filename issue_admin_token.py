#!/usr/bin/env python
"""Print a signed admin bearer token for the export and survey endpoints."""
import argparse

from surveydesk.core.config import get_settings
from surveydesk.core.security import issue_admin_token


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--subject", default="admin", help="who the token is issued to")
    parser.add_argument("--ttl", type=int, default=settings.ADMIN_TOKEN_TTL, help="lifetime in seconds")
    args = parser.parse_args()

    token = issue_admin_token(settings.SECRET_KEY, args.ttl, subject=args.subject)
    print(f"Authorization: Bearer {token}")

if __name__ == "__main__":
    main()
