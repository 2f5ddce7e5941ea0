"""Value types for the topology compiler.

Inputs (NetworkSpec, SubnetRequest) and every planned entity are frozen
pydantic models. Cross references between planned entities are logical ids,
the same ids the CDK stack uses as construct ids.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Iterator, Literal, Mapping, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, computed_field

from ..exceptions import ResourceNotFoundError

# Read-only once validated; dumps back to a plain dict.
Tags = Annotated[
    Mapping[str, str],
    AfterValidator(lambda tags: MappingProxyType(dict(tags))),
    PlainSerializer(dict, return_type=dict[str, str]),
]


class Tier(str, Enum):
    """Subnet tier."""

    PUBLIC = "public"
    PRIVATE = "private"

    @property
    def label(self) -> str:
        """Capitalized tier name used inside logical ids."""
        return self.value.capitalize()


class NetworkSpec(BaseModel):
    """Network-wide compile inputs."""

    model_config = ConfigDict(frozen=True)

    name: str
    cidr_block: str
    dns_support: bool = True
    dns_hostnames: bool = True
    tags: Tags = Field(default_factory=dict, validate_default=True)


class SubnetRequest(BaseModel):
    """How many subnets a tier gets, and where they go."""

    model_config = ConfigDict(frozen=True)

    tier: Tier
    count: int
    cidrs: tuple[str, ...] = ()
    zones: tuple[str, ...] = ()


class NetworkPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str = "Vpc"
    prefix: str
    name: str
    cidr_block: str
    dns_support: bool
    dns_hostnames: bool
    tags: Tags


class GatewayPlan(BaseModel):
    """Internet gateway and its attachment to the network."""

    model_config = ConfigDict(frozen=True)

    logical_id: str = "InternetGateway"
    attachment_logical_id: str = "InternetGatewayAttachment"
    network_ref: str
    name: str
    tags: Tags


class SubnetPlan(BaseModel):
    """One concrete subnet. Index order is stable across recompiles."""

    model_config = ConfigDict(frozen=True)

    index: int
    tier: Tier
    cidr: str
    zone: str
    name: str
    tags: Tags

    @computed_field  # type: ignore[prop-decorator]
    @property
    def logical_id(self) -> str:
        return f"{self.tier.label}Subnet{self.index}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def map_public_ip_on_launch(self) -> bool:
        return self.tier is Tier.PUBLIC


class NatPlan(BaseModel):
    """The single shared NAT path: one Elastic IP and one NAT gateway."""

    model_config = ConfigDict(frozen=True)

    logical_id: str = "NatGateway"
    eip_logical_id: str = "NatEip"
    subnet_ref: str
    subnet_index: int
    name: str
    eip_name: str
    tags: Tags
    eip_tags: Tags


class RoutePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    destination_cidr: str
    target_kind: Literal["gateway", "nat"]
    target_ref: str


class RouteTablePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    tier: Tier
    name: str
    network_ref: str
    route: RoutePlan
    tags: Tags


class AssociationPlan(BaseModel):
    """Binds one subnet to the route table of its own tier."""

    model_config = ConfigDict(frozen=True)

    logical_id: str
    tier: Tier
    subnet_ref: str
    subnet_index: int
    route_table_ref: str


class SecurityRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    protocol: str
    cidr: str
    from_port: Optional[int] = None
    to_port: Optional[int] = None
    description: str = ""


class SecurityGroupPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    tier: Tier
    name: str
    description: str
    network_ref: str
    ingress: tuple[SecurityRule, ...]
    egress: tuple[SecurityRule, ...]
    tags: Tags


class NaclEntry(BaseModel):
    """One numbered NACL rule. Protocol -1 means all traffic."""

    model_config = ConfigDict(frozen=True)

    rule_number: int
    egress: bool
    protocol: int
    cidr: str
    action: Literal["allow", "deny"] = "allow"
    from_port: Optional[int] = None
    to_port: Optional[int] = None


class NaclPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    tier: Tier
    name: str
    network_ref: str
    entries: tuple[NaclEntry, ...]
    tags: Tags

    def entry_logical_id(self, entry: NaclEntry) -> str:
        direction = "Outbound" if entry.egress else "Inbound"
        return f"{self.logical_id}{direction}{entry.rule_number}"


class NaclAssociationPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_id: str
    tier: Tier
    subnet_ref: str
    nacl_ref: str


class NetworkOutputs(BaseModel):
    """Named outputs, expressed as logical ids of the graph."""

    model_config = ConfigDict(frozen=True)

    vpc_id: str
    public_subnet_ids: tuple[str, ...]
    private_subnet_ids: tuple[str, ...]
    public_security_group_id: str
    private_security_group_id: str
    public_network_acl_id: str
    private_network_acl_id: str


class ResourceGraph(BaseModel):
    """Fully resolved set of planned entities for one network."""

    model_config = ConfigDict(frozen=True)

    region: str
    network: NetworkPlan
    gateway: GatewayPlan
    public_subnets: tuple[SubnetPlan, ...]
    private_subnets: tuple[SubnetPlan, ...]
    nat: Optional[NatPlan] = None
    public_route_table: RouteTablePlan
    private_route_table: Optional[RouteTablePlan] = None
    associations: tuple[AssociationPlan, ...]
    security_groups: tuple[SecurityGroupPlan, ...]
    nacls: tuple[NaclPlan, ...]
    nacl_associations: tuple[NaclAssociationPlan, ...]

    @property
    def subnets(self) -> tuple[SubnetPlan, ...]:
        return self.public_subnets + self.private_subnets

    @property
    def route_tables(self) -> tuple[RouteTablePlan, ...]:
        if self.private_route_table is None:
            return (self.public_route_table,)
        return (self.public_route_table, self.private_route_table)

    def security_group(self, tier: Tier) -> SecurityGroupPlan:
        return next(sg for sg in self.security_groups if sg.tier is tier)

    def nacl(self, tier: Tier) -> NaclPlan:
        return next(nacl for nacl in self.nacls if nacl.tier is tier)

    def resources(self) -> Iterator[tuple[str, BaseModel]]:
        """Yield (logical_id, plan) for every entity the engine creates.

        Entities that share a plan (gateway attachment, EIP, routes, NACL
        entries) are yielded under their own logical id with the owning plan.
        """
        yield self.network.logical_id, self.network
        yield self.gateway.logical_id, self.gateway
        yield self.gateway.attachment_logical_id, self.gateway
        for subnet in self.subnets:
            yield subnet.logical_id, subnet
        if self.nat is not None:
            yield self.nat.eip_logical_id, self.nat
            yield self.nat.logical_id, self.nat
        for table in self.route_tables:
            yield table.logical_id, table
            yield table.route.logical_id, table
        for association in self.associations:
            yield association.logical_id, association
        for sg in self.security_groups:
            yield sg.logical_id, sg
        for nacl in self.nacls:
            yield nacl.logical_id, nacl
            for entry in nacl.entries:
                yield nacl.entry_logical_id(entry), nacl
        for nacl_association in self.nacl_associations:
            yield nacl_association.logical_id, nacl_association

    def get(self, logical_id: str) -> BaseModel:
        """Look up the plan that owns a logical id."""
        for candidate, plan in self.resources():
            if candidate == logical_id:
                return plan
        raise ResourceNotFoundError(
            "Logical id is not part of the resource graph",
            logical_id=logical_id,
            network=self.network.name,
        )

    def dependencies(self) -> dict[str, tuple[str, ...]]:
        """Map every entity yielded by resources() to the entities it needs.

        Edges on the gateway attachment (EIP, internet route) are the ones
        CloudFormation cannot infer from references; the stack declares
        them as DependsOn.
        """
        attachment = self.gateway.attachment_logical_id
        deps: dict[str, tuple[str, ...]] = {self.network.logical_id: ()}
        deps[self.gateway.logical_id] = (self.gateway.network_ref,)
        deps[attachment] = (self.gateway.network_ref, self.gateway.logical_id)
        for subnet in self.subnets:
            deps[subnet.logical_id] = (self.network.logical_id,)
        if self.nat is not None:
            deps[self.nat.eip_logical_id] = (attachment,)
            deps[self.nat.logical_id] = (self.nat.eip_logical_id, self.nat.subnet_ref)
        for table in self.route_tables:
            route = table.route
            deps[table.logical_id] = (table.network_ref, route.target_ref)
            if route.target_kind == "gateway":
                deps[route.logical_id] = (table.logical_id, route.target_ref, attachment)
            else:
                deps[route.logical_id] = (table.logical_id, route.target_ref)
        for association in self.associations:
            deps[association.logical_id] = (association.subnet_ref, association.route_table_ref)
        for sg in self.security_groups:
            deps[sg.logical_id] = (sg.network_ref,)
        for nacl in self.nacls:
            deps[nacl.logical_id] = (nacl.network_ref,)
            for entry in nacl.entries:
                deps[nacl.entry_logical_id(entry)] = (nacl.logical_id,)
        for nacl_association in self.nacl_associations:
            deps[nacl_association.logical_id] = (
                nacl_association.subnet_ref,
                nacl_association.nacl_ref,
            )
        return deps

    def creation_order(self) -> list[tuple[str, ...]]:
        """Group entities into waves; each wave only references earlier ones.

        Entities within one wave are independent of each other and may be
        created in parallel.
        """
        deps = self.dependencies()
        levels: dict[str, int] = {}

        def level(logical_id: str) -> int:
            if logical_id not in levels:
                levels[logical_id] = 1 + max(
                    (level(ref) for ref in deps[logical_id]), default=-1
                )
            return levels[logical_id]

        for logical_id in deps:
            level(logical_id)

        waves: list[list[str]] = [[] for _ in range(max(levels.values()) + 1)]
        for logical_id in deps:
            waves[levels[logical_id]].append(logical_id)
        return [tuple(wave) for wave in waves]

    def outputs(self) -> NetworkOutputs:
        return NetworkOutputs(
            vpc_id=self.network.logical_id,
            public_subnet_ids=tuple(s.logical_id for s in self.public_subnets),
            private_subnet_ids=tuple(s.logical_id for s in self.private_subnets),
            public_security_group_id=self.security_group(Tier.PUBLIC).logical_id,
            private_security_group_id=self.security_group(Tier.PRIVATE).logical_id,
            public_network_acl_id=self.nacl(Tier.PUBLIC).logical_id,
            private_network_acl_id=self.nacl(Tier.PRIVATE).logical_id,
        )

    def to_document(self) -> dict[str, Any]:
        """JSON-ready view of the graph, its outputs and creation order."""
        document = self.model_dump(mode="json")
        document["outputs"] = self.outputs().model_dump(mode="json")
        document["creation_order"] = [list(wave) for wave in self.creation_order()]
        return document
