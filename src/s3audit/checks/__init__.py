"""Built-in S3 bucket checks, listed in report order."""

__all__ = [
    "acl_check",
    "encryption_check",
    "logging_check",
    "versioning_check",
    "public_access_block_check",
    "website_check",
    "policy_check",
]
