#!/usr/bin/env python3
"""
One-time script to obtain the Gmail refresh token used for outbound mail.

Run this script locally once, then add the printed token to your .env file.
Without it the service only logs the emails it would have sent.

Usage:
    python scripts/get_token.py

Requirements:
    - GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set in .env
    - Or pass them as arguments: python scripts/get_token.py --client-id=XXX --client-secret=YYY
"""
import argparse
import os
import sys

from dotenv import load_dotenv
from google_auth_oauthlib.flow import InstalledAppFlow

# Must match app.mail.client.SCOPES
SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


def main():
    parser = argparse.ArgumentParser(description="Get Gmail OAuth refresh token")
    parser.add_argument("--client-id", help="Google OAuth Client ID")
    parser.add_argument("--client-secret", help="Google OAuth Client Secret")
    args = parser.parse_args()

    load_dotenv()
    client_id = args.client_id or os.getenv("GOOGLE_CLIENT_ID")
    client_secret = args.client_secret or os.getenv("GOOGLE_CLIENT_SECRET")

    if not client_id or not client_secret:
        print("Error: GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required.")
        print("Set them in .env or pass --client-id and --client-secret.")
        sys.exit(1)

    client_config = {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }
    flow = InstalledAppFlow.from_client_config(client_config, SCOPES)

    # The redirect goes to a localhost URL that nothing listens on; it is pasted back by hand
    os.environ["OAUTHLIB_INSECURE_TRANSPORT"] = "1"
    flow.redirect_uri = "http://localhost:8080/"

    auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")

    print("=" * 60)
    print("Gmail sender OAuth setup")
    print("=" * 60)
    print()
    print("Sign in with the account that should send check-in emails.")
    print("Open this URL in a browser, authorize, then copy the FULL")
    print("localhost URL you are redirected to:")
    print()
    print(auth_url)
    print()

    redirect_response = input("Paste the full redirect URL here: ").strip()
    flow.fetch_token(authorization_response=redirect_response)

    print()
    print("Add the following to your .env file:")
    print()
    print(f"GOOGLE_REFRESH_TOKEN={flow.credentials.refresh_token}")


if __name__ == "__main__":
    main()
