#!/usr/bin/env python3
"""
File download example.

Downloads a file by identifier with progress tracking.
"""

import os
import sys
from pathlib import Path

from streamshare import DEFAULT_BASE_URL, NotFoundError, StreamShareClient, StreamShareError


def format_size(size_bytes: float) -> str:
    """Format byte size to human readable string."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def main():
    base_url = os.environ.get("STREAMSHARE_URL", DEFAULT_BASE_URL)

    if len(sys.argv) < 3:
        print("Usage: python download_file.py <file_identifier> <destination>")
        sys.exit(1)

    file_identifier = sys.argv[1]
    dest_path = Path(sys.argv[2])

    def on_progress(downloaded: int, total):
        if total:
            percentage = downloaded / total * 100
            print(
                f"\rDownloading: {percentage:.1f}% of {format_size(total)}",
                end="",
                flush=True,
            )
        else:
            # Unknown size - just show bytes downloaded
            print(f"\rDownloaded: {format_size(downloaded)}", end="", flush=True)

    with StreamShareClient(base_url=base_url) as client:
        try:
            client.download(file_identifier, dest_path, progress_callback=on_progress)
        except NotFoundError:
            print("Error: File not found or deleted.")
            sys.exit(1)
        except StreamShareError as e:
            print(f"\nError: {e}")
            # A failed download can leave a partial file behind
            if dest_path.exists():
                dest_path.unlink()
            sys.exit(1)

    print("\n\nDownload complete!")
    print(f"Saved to: {dest_path.absolute()}")


if __name__ == "__main__":
    main()
