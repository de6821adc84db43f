"""
Issue an access token for the StockBox API and web pages.

    python scripts/issue_token.py --account 1 --user 7 --permission "*"

Send it as "Authorization: Bearer <token>" to /api/v1/internal, or set it as
the access_token cookie to browse /stock-movements.
"""
import sys
import os
import argparse
from datetime import timedelta

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.core.security import ACCESS_TOKEN_COOKIE, create_access_token


def build_parser():
    parser = argparse.ArgumentParser(description="Issue a StockBox access token")
    parser.add_argument("--account", type=int, required=True, help="idAccount claim")
    parser.add_argument("--user", type=int, required=True, help="idUser claim")
    parser.add_argument(
        "--permission",
        action="append",
        default=[],
        help='SECURABLE:PERMISSION, SECURABLE:* or "*"; repeatable',
    )
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime in minutes")
    parser.add_argument("--cookie", action="store_true", help="Print as a Set-Cookie value")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    expires = timedelta(minutes=args.minutes) if args.minutes else None
    token = create_access_token(args.account, args.user, args.permission, expires_delta=expires)

    if args.cookie:
        print(f"{ACCESS_TOKEN_COOKIE}={token}; Path=/; HttpOnly; SameSite=Lax")
    else:
        print(token)
    return token


if __name__ == "__main__":
    main()
