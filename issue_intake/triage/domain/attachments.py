"""
Attachment Classification
=========================

Partitions submission attachments by declared media type so each kind gets
the processing it needs: images are only named to the classifier,
audio/video is transcribed, everything else is named as context.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from issue_intake.config import MediaKind
from issue_intake.triage.domain.entities import Attachment


def media_kind(content_type: str) -> str:
    """Bucket for a declared content type; empty or unknown types are ``other``."""
    declared = (content_type or "").strip().lower()
    if declared.startswith("image/"):
        return MediaKind.IMAGE
    if declared.startswith("audio/") or declared.startswith("video/"):
        return MediaKind.AUDIO_VIDEO
    return MediaKind.OTHER


@dataclass
class ClassifiedAttachments:
    """Attachments split into the three media buckets, each in submission order."""
    images: List[Attachment] = field(default_factory=list)
    audio_video: List[Attachment] = field(default_factory=list)
    other: List[Attachment] = field(default_factory=list)
    non_images: List[Attachment] = field(default_factory=list)

    @property
    def image_filenames(self) -> List[str]:
        return [a.filename for a in self.images]

    @property
    def non_image_filenames(self) -> List[str]:
        return [a.filename for a in self.non_images]


def classify_attachments(attachments: Iterable[Attachment]) -> ClassifiedAttachments:
    """Place every attachment in exactly one bucket. Pure, never raises."""
    classified = ClassifiedAttachments()
    buckets = {
        MediaKind.IMAGE: classified.images,
        MediaKind.AUDIO_VIDEO: classified.audio_video,
        MediaKind.OTHER: classified.other,
    }
    for attachment in attachments:
        kind = media_kind(attachment.content_type)
        buckets[kind].append(attachment)
        if kind != MediaKind.IMAGE:
            classified.non_images.append(attachment)
    return classified
