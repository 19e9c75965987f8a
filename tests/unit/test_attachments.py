"""Unit tests for attachment classification."""

import pytest

from issue_intake.config import MediaKind
from issue_intake.triage.domain import classify_attachments, media_kind


class TestMediaKind:

    @pytest.mark.unit
    @pytest.mark.parametrize("content_type,expected", [
        ("image/png", MediaKind.IMAGE),
        ("IMAGE/JPEG", MediaKind.IMAGE),
        ("audio/mpeg", MediaKind.AUDIO_VIDEO),
        ("video/mp4", MediaKind.AUDIO_VIDEO),
        ("application/pdf", MediaKind.OTHER),
        ("", MediaKind.OTHER),
        ("application/octet-stream", MediaKind.OTHER),
    ])
    def test_buckets(self, content_type, expected):
        assert media_kind(content_type) == expected


class TestClassifyAttachments:

    @pytest.mark.unit
    def test_every_attachment_in_exactly_one_bucket(self, attachment_factory):
        attachments = [
            attachment_factory("a.png", "image/png"),
            attachment_factory("b.mp4", "video/mp4"),
            attachment_factory("c.pdf", "application/pdf"),
            attachment_factory("d.m4a", "audio/mp4"),
        ]

        classified = classify_attachments(attachments)

        assert classified.image_filenames == ["a.png"]
        assert [a.filename for a in classified.audio_video] == ["b.mp4", "d.m4a"]
        assert [a.filename for a in classified.other] == ["c.pdf"]
        total = len(classified.images) + len(classified.audio_video) + len(classified.other)
        assert total == len(attachments)

    @pytest.mark.unit
    def test_non_image_names_keep_submission_order(self, attachment_factory):
        attachments = [
            attachment_factory("notes.txt", "text/plain"),
            attachment_factory("call.mp3", "audio/mpeg"),
            attachment_factory("log.zip", "application/zip"),
        ]

        classified = classify_attachments(attachments)

        assert classified.non_image_filenames == ["notes.txt", "call.mp3", "log.zip"]

    @pytest.mark.unit
    def test_empty(self):
        classified = classify_attachments([])
        assert classified.images == []
        assert classified.non_image_filenames == []
