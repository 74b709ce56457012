"""
Roster Upload Script - sends CSV files to the import endpoint.

Each file is read as UTF-8 text and posted in one request to
/api/import; the reconciler's summary is printed afterwards. Files that
are not UTF-8 are reported and left out of the upload.

Usage:
    python upload_roster.py bio.csv sem1.csv                # Uses default URL
    API_URL=http://backend:8000 python upload_roster.py roster.csv
"""

import os
import sys

import httpx


def post_json(url, data):
    with httpx.Client(timeout=120.0) as client:
        resp = client.post(url, json=data)
        resp.raise_for_status()
        return resp.json()


def read_file(path):
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return f.read()


def main(argv=None):
    paths = list(sys.argv[1:] if argv is None else argv)
    if not paths:
        print("Usage: python upload_roster.py FILE.csv [FILE.csv ...]")
        return 2

    api_url = os.getenv("API_URL", "http://localhost:8000")
    import_url = f"{api_url}/api/import"

    files = []
    for path in paths:
        if not os.path.exists(path):
            print(f"Error: {path} not found")
            return 1
        try:
            content = read_file(path)
        except UnicodeDecodeError:
            print(f"Error: {path} is not UTF-8 text, skipped")
            continue
        files.append({"name": os.path.basename(path), "content": content})

    if not files:
        print("Error: no readable files to upload")
        return 1

    print(f"Uploading {len(files)} file(s) to: {import_url}")
    try:
        result = post_json(import_url, {"files": files})
    except httpx.HTTPError as e:
        print(f"Upload failed: {e}")
        return 1

    print("=" * 60)
    print("IMPORT SUMMARY")
    print("=" * 60)
    print(f"  Files processed:  {result.get('files_processed', '?')} of {result.get('files_received', '?')}")
    print(f"  Unreadable files: {result.get('file_errors', '?')}")
    print(f"  Created:          {result.get('created', '?')}")
    print(f"  Updated:          {result.get('updated', '?')}")
    print(f"  Skipped:          {result.get('skipped', '?')}")
    print(f"  Row errors:       {result.get('errors', '?')}")
    print(f"  Students now:     {result.get('total_students', '?')}")
    print("=" * 60)

    for d in result.get("details", []):
        where = d.get("file", "?")
        if d.get("row"):
            where += f":{d['row']}"
        print(f"  {d.get('status', '?')} {where} {d.get('reason', '')}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
