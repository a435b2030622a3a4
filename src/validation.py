"""
Schema Validation - OpenAPI v3 schemas for the provider's custom resources.

Provides the CRD schemas and functions to validate resource specs against them.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

from apis import ORG_GROUP, PROVIDER_GROUP, USAGE_KIND, USAGE_PLURAL, VERSION

logger = logging.getLogger(__name__)

_PROVIDER_CONFIG_REF = {
    "type": "object",
    "required": ["name"],
    "properties": {"name": {"type": "string"}},
}

_DELETION_POLICY = {"type": "string", "enum": ["Delete", "Orphan"]}

TEAM_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["forProvider"],
    "properties": {
        "forProvider": {
            "type": "object",
            "required": ["org"],
            "properties": {
                "org": {"type": "string", "minLength": 1},
                "description": {"type": "string"},
                "privacy": {"type": "string", "enum": ["secret", "closed"]},
            },
        },
        "providerConfigRef": _PROVIDER_CONFIG_REF,
        "deletionPolicy": _DELETION_POLICY,
    },
}

MEMBERSHIP_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["forProvider"],
    "properties": {
        "forProvider": {
            "type": "object",
            "required": ["org", "team", "user"],
            "properties": {
                "org": {"type": "string", "minLength": 1},
                "team": {"type": "string", "minLength": 1},
                "user": {"type": "string", "minLength": 1},
                "role": {"type": "string", "enum": ["member", "maintainer"]},
            },
        },
        "providerConfigRef": _PROVIDER_CONFIG_REF,
        "deletionPolicy": _DELETION_POLICY,
    },
}

PROVIDER_CONFIG_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["credentials"],
    "properties": {
        "credentials": {
            "type": "object",
            "required": ["source"],
            "properties": {
                "source": {"type": "string", "enum": ["Secret", "None"]},
                "secretRef": {
                    "type": "object",
                    "required": ["namespace", "name", "key"],
                    "properties": {
                        "namespace": {"type": "string"},
                        "name": {"type": "string"},
                        "key": {"type": "string"},
                    },
                },
            },
        },
    },
}

_OBJECT_REF = {
    "type": "object",
    "required": ["apiVersion", "kind", "name"],
    "properties": {
        "apiVersion": {"type": "string"},
        "kind": {"type": "string"},
        "name": {"type": "string"},
    },
}

USAGE_PROPERTIES: Dict[str, Any] = {
    "providerConfigRef": _PROVIDER_CONFIG_REF,
    "resourceRef": _OBJECT_REF,
}

# kind -> (group, plural, top-level properties, printer columns)
CRDS: Dict[str, Tuple[str, str, Dict[str, Any], list]] = {
    "Team": (
        ORG_GROUP,
        "teams",
        {"spec": TEAM_SPEC_SCHEMA},
        [
            {"name": "ORG", "type": "string", "jsonPath": ".spec.forProvider.org"},
            {
                "name": "NODE-ID",
                "type": "string",
                "jsonPath": ".status.atProvider.nodeId",
            },
        ],
    ),
    "Membership": (
        ORG_GROUP,
        "memberships",
        {"spec": MEMBERSHIP_SPEC_SCHEMA},
        [
            {"name": "TEAM", "type": "string", "jsonPath": ".spec.forProvider.team"},
            {"name": "USER", "type": "string", "jsonPath": ".spec.forProvider.user"},
            {"name": "STATE", "type": "string", "jsonPath": ".status.atProvider.state"},
        ],
    ),
    "ProviderConfig": (
        PROVIDER_GROUP,
        "providerconfigs",
        {"spec": PROVIDER_CONFIG_SPEC_SCHEMA},
        [],
    ),
    USAGE_KIND: (
        PROVIDER_GROUP,
        USAGE_PLURAL,
        USAGE_PROPERTIES,
        [
            {
                "name": "CONFIG-NAME",
                "type": "string",
                "jsonPath": ".providerConfigRef.name",
            },
            {
                "name": "RESOURCE-KIND",
                "type": "string",
                "jsonPath": ".resourceRef.kind",
            },
            {
                "name": "RESOURCE-NAME",
                "type": "string",
                "jsonPath": ".resourceRef.name",
            },
        ],
    ),
}


def validate_openapi_schema(schema: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate that a schema is a valid OpenAPI v3 / JSON Schema.

    Args:
        schema: The schema to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        Draft7Validator.check_schema(schema)
        return True, None
    except Exception as e:
        return False, f"Invalid schema: {str(e)}"


def validate_spec_against_schema(
    spec: Dict[str, Any], schema: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a resource spec against an OpenAPI v3 schema.

    Args:
        spec: The resource specification to validate
        schema: The OpenAPI v3 JSON Schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(schema, format_checker=Draft7Validator.FORMAT_CHECKER)
        errors = list(validator.iter_errors(spec))

        if not errors:
            return True, None

        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"
    except Exception as e:
        logger.error(f"Unexpected error during validation: {e}")
        return False, f"Validation failed: {str(e)}"


def validate_resource_spec(
    kind: str, spec: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """Validate a spec against the schema registered for its kind."""
    if kind not in CRDS:
        return False, f"Unknown kind: {kind}"
    spec_schema = CRDS[kind][2].get("spec")
    if spec_schema is None:
        return False, f"{kind} has no spec"
    return validate_spec_against_schema(spec, spec_schema)


def crd_manifest(kind: str) -> Dict[str, Any]:
    """
    Render the CustomResourceDefinition for a kind.

    Raises:
        ValueError: If the kind's schema is not a valid JSON Schema.
    """
    group, plural, properties, columns = CRDS[kind]
    is_managed = group == ORG_GROUP
    if is_managed:
        columns = columns + [
            {
                "name": "READY",
                "type": "string",
                "jsonPath": ".status.conditions[?(@.type=='Ready')].status",
            },
            {
                "name": "SYNCED",
                "type": "string",
                "jsonPath": ".status.conditions[?(@.type=='Synced')].status",
            },
            {
                "name": "EXTERNAL-NAME",
                "type": "string",
                "jsonPath": ".metadata.annotations.crossplane\\.io/external-name",
            },
        ]

    properties = dict(properties)
    if "spec" in properties:
        properties["status"] = {
            "type": "object",
            "x-kubernetes-preserve-unknown-fields": True,
        }
    schema = {"type": "object", "properties": properties}
    is_valid, error = validate_openapi_schema(schema)
    if not is_valid:
        raise ValueError(f"{kind}: {error}")

    version: Dict[str, Any] = {
        "name": VERSION,
        "served": True,
        "storage": True,
        "schema": {"openAPIV3Schema": schema},
    }
    if columns:
        version["additionalPrinterColumns"] = columns
    if is_managed:
        version["subresources"] = {"status": {}}

    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{plural}.{group}"},
        "spec": {
            "group": group,
            "names": {
                "kind": kind,
                "listKind": f"{kind}List",
                "plural": plural,
                "singular": kind.lower(),
                "categories": ["crossplane", "managed", "github"]
                if is_managed
                else ["crossplane", "provider", "github"],
            },
            "scope": "Cluster",
            "versions": [version],
        },
    }
