"""
Metadata Extractor - Inspects the proxy image and writes the metadata report.
"""

import logging
import os
from typing import List, Optional, Tuple

from deploy_verify.core.orchestrator import OrchestrationDriver
from deploy_verify.errors import MetadataError
from deploy_verify.models.check_result import CheckResult
from deploy_verify.models.image_metadata import ImageMetadata

STAGE = "metadata"


class MetadataExtractor:
    """Extracts ImageMetadata for one image; every failure degrades to WARN."""

    def __init__(
        self,
        driver: OrchestrationDriver,
        image: str = 'nginx:alpine',
        report_path: str = 'nginx-logs.txt',
        raw_path: Optional[str] = 'nginx-logs.json'
    ):
        """
        Args:
            driver: Driver used to find containers and inspect images
            image: Image whose running container and metadata are wanted
            report_path: Where to write the text report
            raw_path: Where to save the raw inspection JSON (None to skip)
        """
        self.driver = driver
        self.image = image
        self.report_path = report_path
        self.raw_path = raw_path
        self.logger = logging.getLogger('MetadataExtractor')

    def locate_container(self) -> CheckResult:
        container_id = self.driver.find_container(self.image)
        if container_id:
            self.logger.info(f"{self.image} container ID: {container_id}")
            return CheckResult.ok(
                f"{self.image} container", f"running as {container_id}", stage=STAGE
            )
        self.logger.warning(f"No running container found for {self.image}")
        return CheckResult.warn(f"{self.image} container", "no running container found", stage=STAGE)

    def extract(self, output: str) -> ImageMetadata:
        """
        Parse inspection output.

        Raises:
            MetadataError: if the output is malformed
        """
        return ImageMetadata.from_inspect_output(self.image, output)

    def write_report(self, metadata: ImageMetadata) -> str:
        """Write the text report and return its path."""
        directory = os.path.dirname(self.report_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.report_path, 'w', encoding='utf-8') as f:
            f.write(metadata.to_report())
        self.logger.info(f"Metadata report written to {self.report_path}")
        return self.report_path

    def _save_raw(self, output: str) -> None:
        if not self.raw_path:
            return
        try:
            with open(self.raw_path, 'w', encoding='utf-8') as f:
                f.write(output)
        except OSError as e:
            self.logger.warning(f"Could not save raw inspection output to {self.raw_path}: {e}")

    def run(self) -> Tuple[Optional[ImageMetadata], List[CheckResult]]:
        """
        Locate the container, inspect the image, and write the report.

        Returns:
            (metadata or None, results)
        """
        results = [self.locate_container()]
        subject = f"{self.image} metadata"

        self.logger.info(f"Inspecting {self.image} image...")
        inspected = self.driver.inspect_image(self.image)
        if not inspected.success:
            self.logger.warning(f"Image inspection failed: {inspected.error_text}")
            results.append(CheckResult.warn(subject, f"inspect failed: {inspected.error_text}", stage=STAGE))
            return None, results

        self._save_raw(inspected.stdout)

        try:
            metadata = self.extract(inspected.stdout)
        except MetadataError as e:
            self.logger.warning(f"Could not extract metadata: {e}")
            results.append(CheckResult.warn(subject, str(e), stage=STAGE))
            return None, results

        try:
            path = self.write_report(metadata)
        except OSError as e:
            self.logger.warning(f"Could not write metadata report: {e}")
            results.append(CheckResult.warn(subject, f"report not written: {e}", stage=STAGE))
            return metadata, results

        results.append(CheckResult.ok(subject, f"written to {path}", stage=STAGE))
        return metadata, results
