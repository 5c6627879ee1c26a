"""
AWS S3 access for physician profile exports.

The profile export job drops timestamped JSON files into one folder of the
configured bucket; the app always loads the most recent one.

Usage:
    from src.utils.s3_client import S3ProfileClient, get_latest_profile_export

    client = S3ProfileClient()
    if client.is_configured():
        latest = client.download_latest_export()
"""

import logging
from datetime import datetime
from io import BytesIO
from typing import List, Optional, Tuple

import streamlit as st

from src.utils.config import get_api_config, is_api_enabled

logger = logging.getLogger(__name__)

EXPORT_EXTENSIONS = (".json",)


class S3ProfileClient:
    """Client for the profile export folder in S3."""

    def __init__(self, folder: Optional[str] = None):
        """Initialize the client from the ``s3`` secrets section.

        Args:
            folder: Optional prefix overriding ``s3.profiles_folder``
        """
        self.config = get_api_config("s3")
        self.enabled = is_api_enabled("s3")
        self._client = None

        folder = folder or self.config.get("profiles_folder") or ""
        if folder and not folder.endswith("/"):
            folder += "/"
        self.folder = folder

    def is_configured(self) -> bool:
        return self.enabled

    def _get_client(self):
        """Lazy initialization of boto3 client."""
        if self._client is None and self.enabled:
            try:
                import boto3

                self._client = boto3.client(
                    "s3",
                    aws_access_key_id=self.config["aws_access_key_id"],
                    aws_secret_access_key=self.config["aws_secret_access_key"],
                    region_name=self.config["region_name"],
                )
            except Exception as e:
                logger.error(f"Failed to initialize S3 client: {e}")
                self.enabled = False
        return self._client

    def list_exports(self) -> List[Tuple[str, datetime]]:
        """
        List export files in the profiles folder, newest first.

        Returns:
            List of tuples (filename, last_modified_datetime)
        """
        client = self._get_client()
        if not client:
            return []

        try:
            response = client.list_objects_v2(Bucket=self.config["bucket_name"], Prefix=self.folder)
        except Exception as e:
            logger.error(f"Failed to list S3 folder '{self.folder}': {e}")
            return []

        files = []
        for obj in response.get("Contents", []):
            key = obj["Key"]
            if key == self.folder or not key.lower().endswith(EXPORT_EXTENSIONS):
                continue
            files.append((key.split("/")[-1], obj["LastModified"]))
        return sorted(files, key=lambda x: x[1], reverse=True)

    def download_export(self, filename: str) -> Optional[bytes]:
        client = self._get_client()
        if not client:
            return None

        s3_key = f"{self.folder}{filename}"
        try:
            buffer = BytesIO()
            client.download_fileobj(self.config["bucket_name"], s3_key, buffer)
            buffer.seek(0)
            return buffer.getvalue()
        except Exception as e:
            logger.error(f"Failed to download '{s3_key}' from S3: {e}")
            return None

    def download_latest_export(self) -> Optional[Tuple[bytes, str]]:
        """
        Download the most recently modified export.

        Returns:
            Tuple of (file_bytes, filename) or None if nothing could be fetched
        """
        files = self.list_exports()
        if not files:
            logger.warning(f"No profile exports found in S3 folder '{self.folder}'")
            return None

        latest_filename, last_modified = files[0]
        logger.info(f"Downloading profile export '{latest_filename}' (modified: {last_modified})")
        file_bytes = self.download_export(latest_filename)
        if file_bytes:
            return file_bytes, latest_filename
        return None


@st.cache_data(ttl=300, show_spinner=False)
def get_latest_profile_export(folder: Optional[str] = None) -> Optional[Tuple[bytes, str]]:
    """Cached download of the latest profile export."""
    client = S3ProfileClient(folder=folder)
    if not client.is_configured():
        return None
    return client.download_latest_export()
