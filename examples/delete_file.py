#!/usr/bin/env python3
"""
File deletion example.
"""

import os
import sys

from streamshare import (
    DEFAULT_BASE_URL,
    AuthenticationError,
    NotFoundError,
    StreamShareClient,
)


def main():
    base_url = os.environ.get("STREAMSHARE_URL", DEFAULT_BASE_URL)

    if len(sys.argv) < 3:
        print("Usage: python delete_file.py <file_identifier> <deletion_token>")
        sys.exit(1)

    file_identifier, deletion_token = sys.argv[1], sys.argv[2]

    with StreamShareClient(base_url=base_url) as client:
        try:
            client.delete(file_identifier, deletion_token)
        except AuthenticationError:
            print("Error: The deletion token does not match this file.")
            sys.exit(1)
        except NotFoundError:
            print("Error: File not found.")
            sys.exit(1)

    print(f"Deleted {file_identifier}")


if __name__ == "__main__":
    main()
