#!/usr/bin/env python3

import os

from ape_accounts import import_account_from_private_key


def main():
    try:
        alias = os.environ["DEPLOYER_ACCOUNT"]
        passphrase = os.environ["DEPLOYER_PASSPHRASE"]
        private_key = os.environ["PRIVATE_KEY"]
    except KeyError:
        raise Exception(
            "There are missing environment variables. "
            "Please set DEPLOYER_ACCOUNT, DEPLOYER_PASSPHRASE and PRIVATE_KEY."
        )
    account = import_account_from_private_key(alias, passphrase, private_key)
    print(f"Account imported as '{alias}': {account.address}")


if __name__ == "__main__":
    main()
