"""Shared constants for infrakit."""

from __future__ import annotations

PROVIDER_AWS = "aws"
PROVIDER_GCP = "gcp"
PROVIDERS = (PROVIDER_AWS, PROVIDER_GCP)

GLOBAL_REGION = "global"
NOT_AVAILABLE = "N/A"

# Attribute keys that link one record to another
ATTR_PROJECT_ID = "project_id"
ATTR_TARGET = "target"
ATTR_URL_MAP = "url_map"
ATTR_DEFAULT_SERVICE = "default_service"
ATTR_CLOUD_ARMOR_POLICY = "cloud_armor_policy"

# Flow frontend / policy attributes
ATTR_IP_ADDRESS = "ip_address"
ATTR_PORT_RANGE = "port_range"
ATTR_PROTOCOL = "protocol"
ATTR_LB_SCHEME = "load_balancing_scheme"
ATTR_SSL_CERTIFICATES = "ssl_certificates"
ATTR_SSL_POLICY = "ssl_policy"
ATTR_RULES = "rules"

BACKEND_TYPE_CLOUD_RUN = "Cloud Run"

# Default routing entry recorded when a URL map has a default service
DEFAULT_ROUTE_HOSTS = ["all"]
DEFAULT_PATH_MATCHER = "default"

# Cloud Asset types used by the organization-wide fetch
ASSET_TYPE_PROJECT = "cloudresourcemanager.googleapis.com/Project"
ASSET_TYPE_FOLDER = "cloudresourcemanager.googleapis.com/Folder"
