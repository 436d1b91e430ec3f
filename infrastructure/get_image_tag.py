#!/usr/bin/env python3
"""
Print a content-based tag for the API container image.

The tag changes whenever a source file that goes into the image changes,
so Pulumi and the image build agree on which image to deploy.
"""

import hashlib
import os
from datetime import datetime

ROOT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")

SOURCE_FILES = ["Dockerfile", "pyproject.toml", "main.py", "authorizer.py"]
SOURCE_PACKAGES = ["cache", "handlers", "models", "services", "utils"]


def iter_source_files():
    for name in SOURCE_FILES:
        yield os.path.join(ROOT, name)
    for package in SOURCE_PACKAGES:
        for subdir, _, files in sorted(os.walk(os.path.join(ROOT, package))):
            for file in sorted(files):
                if file.endswith(".py"):
                    yield os.path.join(subdir, file)


def get_content_hash() -> str:
    digest = hashlib.sha256()
    for path in iter_source_files():
        if os.path.exists(path):
            with open(path, "rb") as f:
                digest.update(f.read())

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"{timestamp}-{digest.hexdigest()[:8]}"


if __name__ == "__main__":
    print(get_content_hash())
