"""Send a waste photo to a running WasteWise API and print the stored report.

Usage:
  python -m wastewise.scripts.upload_waste_image <image path> <access token>
"""

import mimetypes
import os
import sys

import requests

API_URL = os.getenv("WASTEWISE_API_URL", "http://localhost:8000")


def upload(image_path: str, token: str):
    content_type = mimetypes.guess_type(image_path)[0] or "image/jpeg"
    with open(image_path, "rb") as img:
        files = {"file": (os.path.basename(image_path), img, content_type)}
        response = requests.post(f"{API_URL}/api/waste-reports", files=files,
                                 headers={"Authorization": f"Bearer {token}"}, timeout=60)
    print("Status Code:", response.status_code)
    print("Response:", response.json())
    if response.status_code == 200:
        report = response.json()
        print(f"Classified as {report['classification']} "
              f"(confidence {report['confidence_score']}, {report['carbon_footprint']} kg CO2e)")
        print("Image URL:", report["image_url"])
    return response


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    try:
        upload(sys.argv[1], sys.argv[2])
    except (OSError, requests.exceptions.RequestException) as e:
        print(f"Error: {e}")
        sys.exit(1)
