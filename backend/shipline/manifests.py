"""In-place image rewrite for Kubernetes manifest files."""

import logging
import os
import re
import tempfile
from pathlib import Path

from shipline.pipeline.exceptions import ManifestError

logger = logging.getLogger(__name__)

IMAGE_LINE = re.compile(
    r"^(?P<prefix>[ \t]*(?:-[ \t]+)?image:[ \t]*)(?P<quote>[\"']?)(?P<value>[^\s\"'#]+)(?P=quote)(?P<suffix>[ \t]*(?:#.*)?)$",
    re.MULTILINE,
)


def _is_target(value: str, repository: str, placeholder: str) -> bool:
    if placeholder and placeholder in value:
        return True
    return value == repository or value.startswith((f"{repository}:", f"{repository}@"))


def rewrite_image_text(text: str, repository: str, image: str, placeholder: str = "") -> tuple[str, int]:
    """Replace image references in manifest text.

    A reference is rewritten when it contains ``placeholder`` or points at
    ``repository`` under any tag or digest, so a manifest rewritten by an
    earlier run is still picked up.

    Returns:
        (new_text, number_of_references_rewritten)
    """
    count = 0

    def replace(match: re.Match) -> str:
        nonlocal count
        if not _is_target(match.group("value"), repository, placeholder):
            return match.group(0)
        count += 1
        quote = match.group("quote")
        return f"{match.group('prefix')}{quote}{image}{quote}{match.group('suffix')}"

    return IMAGE_LINE.sub(replace, text), count


def rewrite_image(path: Path, repository: str, image: str, placeholder: str = "") -> int:
    """Atomically rewrite the image references of a manifest file in place.

    Raises:
        ManifestError: If the file is missing or holds no matching reference
    """
    if not path.is_file():
        raise ManifestError(f"Manifest not found: {path}")

    text = path.read_text(encoding="utf-8")
    new_text, count = rewrite_image_text(text, repository, image, placeholder)

    if count == 0:
        raise ManifestError(
            f"No image reference for '{repository}' or '{placeholder}' in {path}"
        )

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            delete=False,
            suffix=".yaml",
            encoding="utf-8",
        ) as temp_file:
            temp_file.write(new_text)
            temp_path = Path(temp_file.name)
        os.replace(temp_path, path)
    except OSError:
        if temp_path and temp_path.exists():
            temp_path.unlink()
        raise

    logger.info(f"Rewrote {count} image reference(s) in {path} to {image}")
    return count
