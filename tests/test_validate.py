from collections.abc import Callable
from typing import Any

import pytest

from kindkit import errors as kerrors
from kindkit.config import (
    Cluster,
    ClusterIPFamily,
    Node,
    NodeRole,
    PortMapping,
    set_defaults_cluster,
    set_defaults_node,
)
from kindkit.validate import validate_cluster, validate_node, validate_port


def count_errors(func: Callable[[Any], None], value: Any) -> int:
    try:
        func(value)
    except kerrors.KindError as err:
        return len(kerrors.errors(err) or [err])
    return 0


def new_defaulted_node(role: NodeRole) -> Node:
    node = Node(role=role, image="myImage:latest")
    set_defaults_node(node)
    return node


def defaulted() -> Cluster:
    c = Cluster()
    set_defaults_cluster(c)
    return c


def case_defaulted():
    return defaulted()


def case_multiple_valid_nodes():
    c = defaulted()
    c.nodes += [new_defaulted_node(NodeRole.WORKER), new_defaulted_node(NodeRole.WORKER)]
    return c


def case_default_ipv6():
    c = Cluster()
    c.networking.ip_family = ClusterIPFamily.IPV6
    set_defaults_cluster(c)
    return c


def case_bogus_pod_subnet():
    c = defaulted()
    c.networking.pod_subnet = "aa"
    return c


def case_bogus_service_subnet():
    c = defaulted()
    c.networking.service_subnet = "aa"
    return c


def case_bogus_api_server_port():
    c = defaulted()
    c.networking.api_server_port = 9999999
    return c


def case_bogus_kube_proxy_mode():
    c = defaulted()
    c.networking.kube_proxy_mode = "notiptables"
    return c


def case_invalid_number_of_pod_subnet():
    c = defaulted()
    c.networking.pod_subnet = "192.168.0.2/24,2.2.2.0/24"
    return c


def _dual(pod, service):
    c = defaulted()
    c.networking.pod_subnet = pod
    c.networking.service_subnet = service
    c.networking.ip_family = ClusterIPFamily.DUAL_STACK
    return c


def case_missing_control_plane():
    c = defaulted()
    c.nodes = []
    return c


def case_bogus_node():
    c = Cluster(nodes=[Node(role="bogus"), Node()])
    set_defaults_cluster(c)
    return c


@pytest.mark.parametrize(
    "build, expected",
    [
        (case_defaulted, 0),
        (case_multiple_valid_nodes, 0),
        (case_default_ipv6, 0),
        (case_bogus_pod_subnet, 1),
        (case_bogus_service_subnet, 1),
        (case_bogus_api_server_port, 1),
        (case_bogus_kube_proxy_mode, 1),
        (case_invalid_number_of_pod_subnet, 1),
        (lambda: _dual("192.168.0.2/24,fd00:1::/25", "192.168.0.2/24,fd00:1::/25"), 0),
        (
            lambda: _dual(
                "192.168.0.2/24,fd00:1::/25", "192.168.0.2/24,fd00:1::/25,10.0.0.0/16"
            ),
            1,
        ),
        (lambda: _dual("192.168.0.2/24,fd00:1::/25", "192.168.0.2/24"), 0),
        (lambda: _dual("192.168.0.2/24", "192.168.0.2/24,fd00:1::/25"), 0),
        (lambda: _dual("192.168.0.2/24,2.2.2.0/25", "192.168.0.2/24,2.2.2.0/25"), 2),
        (case_missing_control_plane, 1),
        (case_bogus_node, 1),
    ],
)
def test_cluster_validate(build, expected):
    assert count_errors(validate_cluster, build()) == expected


def test_invalid_cluster_name_message():
    c = defaulted()
    c.name = "Bad Name"
    with pytest.raises(kerrors.KindError) as info:
        validate_cluster(c)
    assert "'Bad Name' is not a valid cluster name" in str(info.value)


def test_missing_control_plane_message():
    c = case_missing_control_plane()
    with pytest.raises(kerrors.KindError, match="must have at least one control-plane node"):
        validate_cluster(c)


def _node_with(**changes):
    node = new_defaulted_node(NodeRole.CONTROL_PLANE)
    for key, value in changes.items():
        setattr(node, key, value)
    return node


@pytest.mark.parametrize(
    "node, expected",
    [
        (new_defaulted_node(NodeRole.CONTROL_PLANE), 0),
        (new_defaulted_node(NodeRole.WORKER), 0),
        (_node_with(image=""), 1),
        (_node_with(role=""), 1),
        (_node_with(role="ssss"), 1),
        (
            _node_with(extra_port_mappings=[PortMapping(container_port=999999999, host_port=8080)]),
            1,
        ),
        (
            _node_with(extra_port_mappings=[PortMapping(container_port=8080, host_port=999999999)]),
            1,
        ),
    ],
)
def test_node_validate(node, expected):
    assert count_errors(validate_node, node) == expected


def test_node_role_message_is_quoted():
    with pytest.raises(kerrors.KindError, match='"ssss" is not a valid node role'):
        validate_node(_node_with(role="ssss"))


@pytest.mark.parametrize("port", [-1, 10, 0, 65535])
def test_port_valid(port):
    assert count_errors(validate_port, port) == 0


@pytest.mark.parametrize(
    "port, message",
    [
        (-2, "invalid port number: -2"),
        (65536, "invalid port number: 65536"),
    ],
)
def test_port_invalid(port, message):
    with pytest.raises(kerrors.KindError) as info:
        validate_port(port)
    assert str(info.value) == message