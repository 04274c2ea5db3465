from dataclasses import dataclass, field

import boto3

from stratus.aws.function.constants import DEFAULT_RUNTIME
from stratus.exceptions import ValidationError


@dataclass(frozen=True, kw_only=True)
class AwsConfig:
    """AWS configuration for Stratus.

    Both profile and region are optional overrides. When not specified the standard
    AWS credential and region resolution chain applies (environment variables,
    shared config files, then the execution role when running inside Lambda).
    """

    profile: str | None = None
    region: str | None = None

    def session(self) -> boto3.Session:
        return boto3.Session(profile_name=self.profile, region_name=self.region)


@dataclass(frozen=True, kw_only=True)
class CodeLocation:
    """Where the uploaded code bundle lives. Embedded verbatim in function resources."""

    bucket: str
    key: str

    def __post_init__(self) -> None:
        if not self.bucket or not self.bucket.strip():
            raise ValidationError("Code bucket cannot be empty")
        if not self.key or not self.key.strip():
            raise ValidationError("Code key cannot be empty")

    def to_property(self) -> dict[str, str]:
        return {"S3Bucket": self.bucket, "S3Key": self.key}


@dataclass(frozen=True, kw_only=True)
class TemplateConfig:
    """Settings shared by every resource the assembler emits.

    Attributes:
        code: Location of the uploaded code bundle.
        runtime: Lambda runtime for user functions and helper functions.
        description: Template description.
    """

    code: CodeLocation
    runtime: str = DEFAULT_RUNTIME
    description: str = field(default="")
