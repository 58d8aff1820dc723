"""
Tests for Media Attachments
===========================

Classification by MIME prefix, NULL-for-empty persistence, and the
append vs replace merge modes.
"""

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ireporter import media
from ireporter.errors import NoFiles, ValidationError
from ireporter.media import MediaFile


def _report(images=None, videos=None):
    return SimpleNamespace(
        images=json.dumps(images) if images else None,
        videos=json.dumps(videos) if videos else None,
    )


class TestClassify:

    def test_splits_by_mime_prefix_keeping_order(self):
        files = [
            MediaFile("a.jpg", "image/jpeg"),
            MediaFile("clip.mp4", "video/mp4"),
            MediaFile("b.png", "image/png"),
        ]
        images, videos = media.classify(files)
        assert images == ["a.jpg", "b.png"]
        assert videos == ["clip.mp4"]

    def test_other_types_are_dropped(self):
        images, videos = media.classify([MediaFile("doc.pdf", "application/pdf")])
        assert images == []
        assert videos == []

    def test_prefix_match_is_case_insensitive(self):
        images, _ = media.classify([MediaFile("a.JPG", "IMAGE/JPEG")])
        assert images == ["a.JPG"]

    def test_is_media_type(self):
        assert media.is_media_type("image/gif")
        assert media.is_media_type("video/quicktime")
        assert not media.is_media_type("text/plain")
        assert not media.is_media_type(None)


class TestEncoding:

    def test_empty_list_is_stored_as_null(self):
        assert media.encode_media([]) is None

    def test_null_decodes_to_empty_list(self):
        assert media.decode_media(None) == []
        assert media.decode_media("") == []

    def test_non_list_column_is_rejected(self):
        with pytest.raises(ValueError):
            media.decode_media('{"a": 1}')


class TestAppend:

    def test_appends_to_existing_lists(self):
        report = _report(images=["old.jpg"], videos=["old.mp4"])
        fields = media.append(report, [
            MediaFile("new.png", "image/png"),
            MediaFile("new.mp4", "video/mp4"),
        ])
        assert json.loads(fields["images"]) == ["old.jpg", "new.png"]
        assert json.loads(fields["videos"]) == ["old.mp4", "new.mp4"]

    def test_images_only_batch_keeps_videos_null(self):
        fields = media.append(_report(), [MediaFile("a.jpg", "image/jpeg")])
        assert json.loads(fields["images"]) == ["a.jpg"]
        assert fields["videos"] is None

    def test_empty_batch_raises_no_files(self):
        with pytest.raises(NoFiles) as exc:
            media.append(_report(images=["a.jpg"]), [])
        assert exc.value.message == "No files uploaded"
        assert isinstance(exc.value, ValidationError)
        assert exc.value.status_code == 400


class TestReplace:

    def test_new_batch_replaces_both_lists(self):
        report = _report(images=["old.jpg"], videos=["old.mp4"])
        fields = media.replace(report, [MediaFile("new.png", "image/png")])
        assert json.loads(fields["images"]) == ["new.png"]
        # Batch without videos clears the old videos
        assert fields["videos"] is None

    def test_empty_batch_leaves_media_untouched(self):
        assert media.replace(_report(images=["old.jpg"]), []) == {}


class TestInitial:

    def test_no_files_gives_null_columns(self):
        assert media.initial([]) == {"images": None, "videos": None}

    def test_files_are_classified(self):
        fields = media.initial([MediaFile("v.webm", "video/webm")])
        assert fields["images"] is None
        assert json.loads(fields["videos"]) == ["v.webm"]
