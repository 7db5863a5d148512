"""
Image Metadata model.

Built from the JSON array printed by ``docker image inspect``. The array
holds one object per inspected image; only the first one is used.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List

from deploy_verify.errors import MetadataError
from deploy_verify.utils.date_parser import DateParser


@dataclass(frozen=True)
class ImageMetadata:
    """Selected fields of an inspected container image."""

    image: str
    repo_tags: List[str]
    created: datetime
    os: str
    config: Dict[str, Any] = field(default_factory=dict)
    exposed_ports: FrozenSet[str] = frozenset()

    # Section labels in report order
    REPORT_FIELDS = ('RepoTags', 'Created', 'Os', 'Config', 'ExposedPorts')

    @classmethod
    def from_inspect_output(cls, image: str, output: str) -> 'ImageMetadata':
        """
        Parse raw ``docker image inspect`` output.

        Args:
            image: Image name that was inspected
            output: JSON text printed by the inspect command

        Returns:
            ImageMetadata for the first image object

        Raises:
            MetadataError: if the output is not valid JSON or has the wrong shape
        """
        if not output or not output.strip():
            raise MetadataError(f"Empty inspection output for {image}")
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Invalid inspection JSON for {image}: {e}")
        return cls.from_payload(image, payload)

    @classmethod
    def from_payload(cls, image: str, payload: Any) -> 'ImageMetadata':
        """Build ImageMetadata from an already decoded inspection payload."""
        if not isinstance(payload, list):
            raise MetadataError(
                f"Expected a JSON array from image inspect, got {type(payload).__name__}"
            )
        if not payload:
            raise MetadataError(f"No image objects in inspection output for {image}")

        entry = payload[0]
        if not isinstance(entry, dict):
            raise MetadataError(f"Image entry is not an object: {type(entry).__name__}")

        repo_tags = entry.get('RepoTags') or []
        if not isinstance(repo_tags, list) or not all(isinstance(t, str) for t in repo_tags):
            raise MetadataError(f"RepoTags is not a list of strings: {repo_tags!r}")

        created_raw = entry.get('Created')
        created = DateParser().parse(created_raw) if isinstance(created_raw, str) else None
        if created is None:
            raise MetadataError(f"Missing or unparseable Created timestamp: {created_raw!r}")

        config = entry.get('Config') or {}
        if not isinstance(config, dict):
            raise MetadataError(f"Config is not an object: {type(config).__name__}")

        exposed = config.get('ExposedPorts') or {}
        if not isinstance(exposed, dict):
            raise MetadataError(f"ExposedPorts is not an object: {type(exposed).__name__}")

        return cls(
            image=image,
            repo_tags=list(repo_tags),
            created=created,
            os=str(entry.get('Os') or ''),
            config=config,
            exposed_ports=frozenset(exposed.keys()),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary keyed by the report section labels."""
        return {
            'RepoTags': self.repo_tags,
            'Created': self.created.isoformat(),
            'Os': self.os,
            'Config': self.config,
            'ExposedPorts': sorted(self.exposed_ports),
        }

    def to_report(self) -> str:
        """Render the line-oriented text report, one labeled section per field."""
        lines = [f"# Image: {self.image}"]
        for label, value in self.to_dict().items():
            lines.append(f"{label}:")
            if isinstance(value, str):
                lines.append(value)
            else:
                lines.append(json.dumps(value, indent=2, sort_keys=True))
        return "\n".join(lines) + "\n"
