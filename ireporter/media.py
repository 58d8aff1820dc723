"""
Media Attachments
=================

Classifies uploaded files into images and videos and merges them into a
report's persisted media lists.

Persisted form: a JSON-encoded list of filenames, or NULL when the list is
empty. Two merge modes exist:
- append:  used by the dedicated "add media" endpoint (existing ++ new)
- replace: used by the full update endpoint (new batch wins, empty batch keeps)
"""

import json
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import NoFiles

IMAGE_PREFIX = "image/"
VIDEO_PREFIX = "video/"


@dataclass(frozen=True)
class MediaFile:
    """An upload already saved to disk; only its filename is persisted"""
    filename: str
    mimetype: str


def is_media_type(mimetype: Optional[str]) -> bool:
    mimetype = (mimetype or "").lower()
    return mimetype.startswith(IMAGE_PREFIX) or mimetype.startswith(VIDEO_PREFIX)


def classify(files: Iterable[MediaFile]) -> Tuple[List[str], List[str]]:
    """
    Partition files into (images, videos) by MIME prefix.

    Files that are neither are dropped silently. Upload order is kept.
    """
    images: List[str] = []
    videos: List[str] = []
    for f in files:
        mimetype = (f.mimetype or "").lower()
        if mimetype.startswith(IMAGE_PREFIX):
            images.append(f.filename)
        elif mimetype.startswith(VIDEO_PREFIX):
            videos.append(f.filename)
    return images, videos


def encode_media(names: List[str]) -> Optional[str]:
    """Empty list is stored as NULL"""
    if not names:
        return None
    return json.dumps(list(names))


def decode_media(raw: Optional[str]) -> List[str]:
    """NULL (or empty text) decodes to an empty list"""
    if not raw:
        return []
    names = json.loads(raw)
    if names is None:
        return []
    if not isinstance(names, list):
        raise ValueError(f"Media column holds {type(names).__name__}, expected a list")
    return [str(n) for n in names]


def append(report, files: List[MediaFile]) -> Dict[str, Optional[str]]:
    """
    Concatenate a new upload batch onto the report's media lists.

    Returns the column values to persist.
    Raises NoFiles when the batch is empty.
    """
    if not files:
        raise NoFiles()

    new_images, new_videos = classify(files)
    images = decode_media(report.images) + new_images
    videos = decode_media(report.videos) + new_videos
    return {"images": encode_media(images), "videos": encode_media(videos)}


def replace(report, files: List[MediaFile]) -> Dict[str, Optional[str]]:
    """
    Replace both media lists with the classification of a new batch.

    An empty batch leaves the report's media untouched (returns no columns).
    """
    if not files:
        return {}

    images, videos = classify(files)
    return {"images": encode_media(images), "videos": encode_media(videos)}


def initial(files: List[MediaFile]) -> Dict[str, Optional[str]]:
    """Media columns for a freshly created report"""
    images, videos = classify(files or [])
    return {"images": encode_media(images), "videos": encode_media(videos)}
