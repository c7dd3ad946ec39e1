"""Object store, filesystem transfer, and location APIs."""

from .local import copy_file
from .location import S3Location, is_s3_location, parse_s3_location
from .s3 import S3Storage

__all__ = ["S3Location", "S3Storage", "copy_file", "is_s3_location", "parse_s3_location"]
