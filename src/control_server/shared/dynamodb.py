"""
DynamoDB Helper Module
======================

Provides the DynamoDB table resource with retry configuration for the user
store.

For On-Call Engineers:
    - Retry logic handles transient failures automatically (3 attempts with backoff).
    - If you see `ResourceNotFoundException`, verify USERS_TABLE points at an
      existing table in the configured region.

For Developers:
    - Keys use composite format: PK=USER#<username>, SK=PROFILE | IMAGE#<uuid>.
    - Never construct Key expressions with string concatenation; use
      boto3.dynamodb.conditions.
"""

import logging
import os
from typing import Any

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)

# Retry configuration for transient failures
# On-Call Note: Increase max_attempts if seeing intermittent throttling
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",  # Automatically adjusts to throttling
    },
    connect_timeout=5,
    read_timeout=10,
)


def get_dynamodb_resource(region_name: str | None = None) -> Any:
    """
    Get a DynamoDB resource with retry configuration.

    Args:
        region_name: AWS region (defaults to AWS_DEFAULT_REGION env var)

    Returns:
        boto3 DynamoDB resource
    """
    region = (
        region_name
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
    )
    if not region:
        raise ValueError(
            "AWS_DEFAULT_REGION or AWS_REGION environment variable must be set"
        )

    return boto3.resource(
        "dynamodb",
        region_name=region,
        config=RETRY_CONFIG,
    )


def get_table(table_name: str, region_name: str | None = None) -> Any:
    """
    Get a DynamoDB table resource.

    Args:
        table_name: Table name (AppConfig.users_table)
        region_name: AWS region

    Returns:
        boto3 DynamoDB Table resource
    """
    if not table_name:
        raise ValueError("Table name required: set USERS_TABLE")

    logger.debug("Opening DynamoDB table", extra={"table_name": table_name})
    resource = get_dynamodb_resource(region_name)
    return resource.Table(table_name)
