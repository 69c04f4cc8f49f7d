#!/usr/bin/env python3
"""
File upload example.

Uploads a file with a progress bar and prints the download URL and
deletion token.
"""

import logging
import os
import sys
from pathlib import Path

from streamshare import DEFAULT_BASE_URL, StreamShareClient, StreamShareError


def main():
    # Get configuration from environment
    base_url = os.environ.get("STREAMSHARE_URL", DEFAULT_BASE_URL)
    if os.environ.get("STREAMSHARE_DEBUG"):
        logging.basicConfig(level=logging.DEBUG)

    if len(sys.argv) < 2:
        print("Usage: python upload_file.py <file_path>")
        print("\nEnvironment variables:")
        print(f"  STREAMSHARE_URL   - StreamShare server URL (default: {DEFAULT_BASE_URL})")
        print("  STREAMSHARE_DEBUG - Set to enable debug logging")
        sys.exit(1)

    file_path = Path(sys.argv[1])

    # Progress callback
    def on_progress(uploaded: int, total: int):
        percentage = uploaded / total * 100 if total else 100.0
        bar_width = 40
        filled = int(bar_width * percentage / 100)
        bar = "=" * filled + "-" * (bar_width - filled)
        print(f"\rUploading: [{bar}] {percentage:.1f}%", end="", flush=True)

    print(f"Uploading {file_path.name} to {base_url}...")

    with StreamShareClient(base_url=base_url) as client:
        try:
            result = client.upload(file_path, progress_callback=on_progress)
        except StreamShareError as e:
            print(f"\nError: {e}")
            sys.exit(1)
        download_url = client.download_url(result.file_identifier)

    print()  # New line after progress bar
    print("\nUpload successful!")
    print(f"  File identifier: {result.file_identifier}")
    print(f"  Download URL:    {download_url}")
    print(f"  Deletion token:  {result.deletion_token}")
    print("\nKeep the deletion token; it is the only way to delete the file.")


if __name__ == "__main__":
    main()
