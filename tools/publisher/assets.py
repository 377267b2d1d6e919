from __future__ import annotations

import hashlib
import pathlib
import shutil
from typing import Dict, Optional

from .config import ASSET_DIR_NAME, ASSET_SOURCE_DIR_CANDIDATES, EXTERNAL_URL
from .utils import content_hash, slugify


def ensure_dir(p: pathlib.Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def is_relative_local(url: str) -> bool:
    if not url:
        return False
    if EXTERNAL_URL.match(url):
        return False
    if url.startswith("#"):
        return False
    return True


def asset_copy_name(src: pathlib.Path, data: bytes) -> str:
    safe_stem = slugify(src.stem) or "asset"
    return f"{ASSET_DIR_NAME}/{safe_stem}.{content_hash(data)}{src.suffix}"


def resolve_asset_candidate(
    base_dir: pathlib.Path, url: str
) -> Optional[pathlib.Path]:
    cand = (base_dir / url).resolve()
    if cand.is_file():
        return cand
    for adir in ASSET_SOURCE_DIR_CANDIDATES:
        cand2 = (base_dir / adir / url).resolve()
        if cand2.is_file():
            return cand2
    return None


def list_static_tree(static_root: pathlib.Path, prefix: str) -> Dict[str, pathlib.Path]:
    """Every file under ``static_root`` keyed by its output path."""
    out: Dict[str, pathlib.Path] = {}
    if not static_root.is_dir():
        return out
    for p in sorted(static_root.rglob("*")):
        if p.is_file() and not any(part.startswith(".") for part in p.relative_to(static_root).parts):
            rel = p.relative_to(static_root).as_posix()
            out[f"{prefix}/{rel}" if prefix else rel] = p
    return out


def read_static_tree(static_root: pathlib.Path, prefix: str) -> Dict[str, bytes]:
    return {rel: p.read_bytes() for rel, p in list_static_tree(static_root, prefix).items()}


def mirror_files(files: Dict[str, bytes], dst_dir: pathlib.Path, log=print) -> int:
    """Make ``dst_dir`` hold exactly ``files``, rewriting only what changed.

    Returns the number of files written.
    """
    existing = set()
    if dst_dir.exists():
        existing = {
            p.relative_to(dst_dir).as_posix()
            for p in dst_dir.rglob("*")
            if p.is_file()
        }
    ensure_dir(dst_dir)

    written = 0
    for rel in sorted(files):
        data = files[rel]
        d = dst_dir / rel
        if d.exists() and (
            hashlib.sha256(d.read_bytes()).digest() == hashlib.sha256(data).digest()
        ):
            continue
        ensure_dir(d.parent)
        d.write_bytes(data)
        written += 1

    for rel in sorted(existing - set(files)):
        (dst_dir / rel).unlink()
        log(f"- removed stale {rel}")

    # drop directories emptied by the removals above
    for p in sorted(dst_dir.rglob("*"), key=lambda p: len(p.parts), reverse=True):
        if p.is_dir() and not any(p.iterdir()):
            shutil.rmtree(p)

    return written
