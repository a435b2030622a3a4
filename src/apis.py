"""
API types for the provider's custom resources.

Pydantic models parse the camelCase objects returned by the Kubernetes API
and dump back to the same shape for status patches.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

ORG_GROUP = "org.github.crossplane.io"
PROVIDER_GROUP = "github.crossplane.io"
VERSION = "v1alpha1"

ANNOTATION_EXTERNAL_NAME = "crossplane.io/external-name"
FINALIZER = "finalizer.managedresource.crossplane.io"
LABEL_PROVIDER_CONFIG = "github.crossplane.io/providerconfig"

USAGE_KIND = "ProviderConfigUsage"
USAGE_PLURAL = "providerconfigusages"


class APIModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ObjectMeta(APIModel):
    name: str
    uid: str = ""
    generation: int = 0
    resource_version: Optional[str] = Field(None, alias="resourceVersion")
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    finalizers: List[str] = Field(default_factory=list)
    deletion_timestamp: Optional[str] = Field(None, alias="deletionTimestamp")


class Reference(APIModel):
    name: str


class SecretKeySelector(APIModel):
    namespace: str
    name: str
    key: str


class DeletionPolicy(str, Enum):
    DELETE = "Delete"
    ORPHAN = "Orphan"


class ConditionType(str, Enum):
    READY = "Ready"
    SYNCED = "Synced"


class Condition(APIModel):
    type: ConditionType
    status: str
    reason: str
    message: str = ""
    last_transition_time: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        ),
        alias="lastTransitionTime",
    )

    def equal(self, other: "Condition") -> bool:
        """Conditions are equal when everything but the timestamp matches."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.reason == other.reason
            and self.message == other.message
        )


def available() -> Condition:
    return Condition(type=ConditionType.READY, status="True", reason="Available")


def creating() -> Condition:
    return Condition(type=ConditionType.READY, status="False", reason="Creating")


def deleting() -> Condition:
    return Condition(type=ConditionType.READY, status="False", reason="Deleting")


def unavailable() -> Condition:
    return Condition(type=ConditionType.READY, status="False", reason="Unavailable")


def reconcile_success() -> Condition:
    return Condition(
        type=ConditionType.SYNCED, status="True", reason="ReconcileSuccess"
    )


def reconcile_error(message: str) -> Condition:
    return Condition(
        type=ConditionType.SYNCED,
        status="False",
        reason="ReconcileError",
        message=message,
    )


class ProviderCredentials(APIModel):
    source: str = "Secret"
    secret_ref: Optional[SecretKeySelector] = Field(None, alias="secretRef")


class ProviderConfigSpec(APIModel):
    credentials: ProviderCredentials = Field(default_factory=ProviderCredentials)


class ProviderConfig(APIModel):
    KIND: ClassVar[str] = "ProviderConfig"
    GROUP: ClassVar[str] = PROVIDER_GROUP
    PLURAL: ClassVar[str] = "providerconfigs"

    api_version: str = Field(f"{PROVIDER_GROUP}/{VERSION}", alias="apiVersion")
    kind: str = "ProviderConfig"
    metadata: ObjectMeta
    spec: ProviderConfigSpec = Field(default_factory=ProviderConfigSpec)

    @classmethod
    def resource_type(cls) -> Tuple[str, str, str]:
        return cls.GROUP, VERSION, cls.PLURAL


class ManagedResource(APIModel):
    """
    Common behaviour of managed resources.

    Subclasses define spec/status models and the class-level kind info
    used to address them in the API.
    """

    KIND: ClassVar[str] = ""
    GROUP: ClassVar[str] = ORG_GROUP
    PLURAL: ClassVar[str] = ""

    api_version: str = Field(f"{ORG_GROUP}/{VERSION}", alias="apiVersion")
    kind: str = ""
    metadata: ObjectMeta

    def get_external_name(self) -> str:
        return self.metadata.annotations.get(ANNOTATION_EXTERNAL_NAME, "")

    def set_external_name(self, name: str) -> None:
        self.metadata.annotations[ANNOTATION_EXTERNAL_NAME] = name

    def get_provider_config_reference(self) -> Reference:
        return self.spec.provider_config_ref

    def get_deletion_policy(self) -> DeletionPolicy:
        return self.spec.deletion_policy

    def is_deleting(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def get_condition(self, ctype: ConditionType) -> Optional[Condition]:
        for c in self.status.conditions:
            if c.type == ctype:
                return c
        return None

    def set_conditions(self, *conditions: Condition) -> None:
        """Set conditions, keeping transition times of unchanged ones."""
        for new in conditions:
            existing = self.get_condition(new.type)
            if existing is None:
                self.status.conditions.append(new)
                continue
            if existing.equal(new):
                continue
            if existing.status == new.status:
                new.last_transition_time = existing.last_transition_time
            self.status.conditions[self.status.conditions.index(existing)] = new

    @classmethod
    def resource_type(cls) -> Tuple[str, str, str]:
        """Group, version and plural addressing this kind in the API."""
        return cls.GROUP, VERSION, cls.PLURAL


class ResourceSpec(APIModel):
    provider_config_ref: Reference = Field(
        default_factory=lambda: Reference(name="default"), alias="providerConfigRef"
    )
    deletion_policy: DeletionPolicy = Field(
        DeletionPolicy.DELETE, alias="deletionPolicy"
    )


class ResourceStatus(APIModel):
    conditions: List[Condition] = Field(default_factory=list)


# ==================== Team ====================


class TeamParameters(APIModel):
    org: str
    description: Optional[str] = None
    privacy: Optional[str] = None


class TeamObservation(APIModel):
    node_id: Optional[str] = Field(None, alias="nodeId")


class TeamSpec(ResourceSpec):
    for_provider: TeamParameters = Field(..., alias="forProvider")


class TeamStatus(ResourceStatus):
    at_provider: TeamObservation = Field(
        default_factory=TeamObservation, alias="atProvider"
    )


class Team(ManagedResource):
    KIND: ClassVar[str] = "Team"
    PLURAL: ClassVar[str] = "teams"

    kind: str = "Team"
    spec: TeamSpec
    status: TeamStatus = Field(default_factory=TeamStatus)


# ==================== Membership ====================


class MembershipParameters(APIModel):
    org: str
    team: str
    user: str
    role: Optional[str] = None


class MembershipObservation(APIModel):
    state: Optional[str] = None
    role: Optional[str] = None


class MembershipSpec(ResourceSpec):
    for_provider: MembershipParameters = Field(..., alias="forProvider")


class MembershipStatus(ResourceStatus):
    at_provider: MembershipObservation = Field(
        default_factory=MembershipObservation, alias="atProvider"
    )


class Membership(ManagedResource):
    KIND: ClassVar[str] = "Membership"
    PLURAL: ClassVar[str] = "memberships"

    kind: str = "Membership"
    spec: MembershipSpec
    status: MembershipStatus = Field(default_factory=MembershipStatus)
