#!/usr/bin/env python3
"""
YTOPERATOR CONSTANTS
--------------------
Ports, label keys and condition names shared by every component driver.

Author: YTOperator Team
Date: 2026-10-17
"""

# Cluster resource coordinates on the orchestration platform
CLUSTER_API_VERSION = "cluster.ytsaurus.tech/v1"
CLUSTER_KIND = "Ytsaurus"

# RPC / monitoring ports per role
MASTER_RPC_PORT = 9010
MASTER_MONITORING_PORT = 10010
DATA_NODE_RPC_PORT = 9012
DATA_NODE_MONITORING_PORT = 10012
EXEC_NODE_RPC_PORT = 9029
EXEC_NODE_MONITORING_PORT = 10029
HTTP_PROXY_RPC_PORT = 9013
HTTP_PROXY_MONITORING_PORT = 10013
HTTP_PROXY_HTTP_PORT = 80

# Metrics endpoint exposed by every component's monitoring service
YT_MONITORING_PORT = 10000
YT_MONITORING_PORT_NAME = "metrics"
YT_METRICS_LABEL_NAME = "yt_metrics"

# Labels stamped on every managed object
YT_COMPONENT_LABEL_NAME = "ytsaurus.tech/component"
CONFIG_HASH_ANNOTATION = "ytsaurus.tech/config-hash"

YT_COMPONENT_LABEL_MASTER_CELL = "yt-master"
YT_COMPONENT_LABEL_SECONDARY_MASTER = "yt-secondary-master"
YT_COMPONENT_LABEL_MASTER_CACHE = "yt-master-cache"
YT_COMPONENT_LABEL_DATA_NODE = "yt-data-node"
YT_COMPONENT_LABEL_EXEC_NODE = "yt-exec-node"
YT_COMPONENT_LABEL_HTTP_PROXY = "yt-http-proxy"

DEFAULT_HOST_ADDRESS_LABEL = "kubernetes.io/hostname"
DEFAULT_MEDIUM = "default"
DEFAULT_GROUP_NAME = "default"

CLIENT_CONFIG_FILE_NAME = "client.json"
CONFIG_MOUNT_PATH = "/config"

# Update-cycle conditions
CONDITION_MASTER_EXIT_READ_ONLY_PREPARED = "MasterExitReadOnlyPrepared"
CONDITION_MASTER_EXITED_READ_ONLY = "MasterExitedReadOnly"
CONDITION_SAFE_MODE_ENABLED = "SafeModeEnabled"
CONDITION_NO_POSSIBILITY = "NoPossibility"

# Cluster-level conditions
CONDITION_FULL_UPDATE_BLOCKED = "FullUpdateBlocked"

# Administrative catalog
SYS_PATH = "//sys"
RACKS_PATH = "//sys/racks"
DATA_CENTERS_PATH = "//sys/data_centers"
HOSTS_PATH = "//sys/hosts"
CLUSTER_NODES_PATH = "//sys/cluster_nodes"
SAFE_MODE_PATH = "//sys/@enable_safe_mode"
