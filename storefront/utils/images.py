# storefront/utils/images.py
import io
import logging
import os
import uuid
from pathlib import Path
from typing import Dict, List, Tuple, Optional
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# safe image extensions we allow
ALLOWED_EXT = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
# product card, product detail zoom
DEFAULT_SIZES = [(1200, 1200), (300, 300)]


class InvalidImage(ValueError):
    pass


def _ensure_dir(path: Path):
    path.mkdir(parents=True, exist_ok=True)


def _safe_ext(filename: str) -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lower()


def _product_dir(base_dir: str, product_id) -> Path:
    return Path(base_dir) / "products" / str(product_id)


def image_url(base_dir: str, product_id, filename: str) -> str:
    return f"/{base_dir.strip('/')}/products/{product_id}/{filename}"


async def save_image_upload(upload_file, product_id, base_dir: str,
                            sizes: Optional[List[Tuple[int, int]]] = None) -> Dict[str, List[str]]:
    """
    Save an UploadFile for product_id under base_dir/products/<product_id>/.
    Writes the original under a random name plus one resized variant per size.
    Returns {"original": "<fname>", "variants": ["<fname1>", ...]}.
    Raises InvalidImage if the bytes are not an image Pillow can read.
    """
    sizes = sizes or DEFAULT_SIZES
    contents = await upload_file.read()
    try:
        im = Image.open(io.BytesIO(contents))
        im.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImage(f"Not a valid image: {upload_file.filename}") from e

    ext = _safe_ext(upload_file.filename)
    if ext not in ALLOWED_EXT:
        ext = f".{im.format.lower()}" if im.format else ".jpg"

    product_dir = _product_dir(base_dir, product_id)
    _ensure_dir(product_dir)
    fname = f"{uuid.uuid4().hex}{ext}"
    (product_dir / fname).write_bytes(contents)

    saved = {"original": fname, "variants": []}
    rgb = im.convert("RGB")
    for w, h in sizes:
        variant = rgb.copy()
        variant.thumbnail((w, h))
        vname = f"{Path(fname).stem}_{w}x{h}.jpg"
        variant.save(product_dir / vname, format="JPEG", optimize=True, quality=85)
        saved["variants"].append(vname)
    logger.info("Stored image %s for product %s (%d variants)", fname, product_id, len(saved["variants"]))
    return saved


def list_product_images(base_dir: str, product_id) -> List[str]:
    product_dir = _product_dir(base_dir, product_id)
    if not product_dir.exists():
        return []
    return [p.name for p in sorted(product_dir.iterdir()) if p.is_file()]


def delete_product_image(base_dir: str, product_id, filename: str) -> bool:
    """Remove an original and its variants. Returns False if the original is missing."""
    product_dir = _product_dir(base_dir, product_id)
    if Path(filename).name != filename:
        return False
    path = product_dir / filename
    if not path.exists():
        return False
    path.unlink()
    for p in product_dir.glob(f"{Path(filename).stem}_*"):
        p.unlink()
    return True
