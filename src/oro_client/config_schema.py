"""
JSON schemas for configuration validation.
"""

REGISTRY_SCHEMA = {
    "type": "object",
    "properties": {
        "registry": {"type": "string", "pattern": "^https?://"},
        "token": {"type": ["string", "null"]},
        "user_agent": {"type": ["string", "null"]},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "connect_timeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "fetch_retries": {"type": "integer", "minimum": 0},
        "retry_min_backoff": {"type": "number", "minimum": 0.0},
        "retry_max_backoff": {"type": "number", "minimum": 0.0},
        "max_concurrency": {"type": "integer", "minimum": 1},
        "proxy": {"type": "boolean"},
        "proxy_url": {"type": ["string", "null"]},
        "no_proxy_domain": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

CACHE_SCHEMA = {
    "type": "object",
    "properties": {
        "backend": {"type": "string", "enum": ["none", "fs", "memory"]},
        "enabled": {"type": "boolean"},
        "default_collection": {"type": "string", "minLength": 1},
        "mode": {
            "type": "string",
            "enum": ["default", "no-store", "reload", "no-cache", "force-cache", "only-if-cached"],
        },
        # FSCache
        "cache_dir": {"type": "string"},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_file": {"type": ["string", "null"]},
        "include_timestamp": {"type": "boolean"},
        "log_requests": {"type": "boolean"},
        "log_responses": {"type": "boolean"},
        "log_cache": {"type": "boolean"},
        "redact_auth": {"type": "boolean"},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "registry": REGISTRY_SCHEMA,
        "cache": CACHE_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
    "additionalProperties": False,
}
