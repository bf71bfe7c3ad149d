"""
Environment configuration for vault-pool.

Every value can be overridden by the matching constructor argument.
"""
import os

# Main project holding the api_keys and files_metadata tables
REGISTRY_URL = os.getenv("VAULT_REGISTRY_URL", "http://127.0.0.1:54321")
REGISTRY_KEY = os.getenv("VAULT_REGISTRY_KEY", "")

# Bucket created in every storage account
BUCKET_NAME = os.getenv("VAULT_BUCKET", "instavault-storage")

# Hard per-object ceiling enforced by the backend bucket
MAX_OBJECT_BYTES = int(os.getenv("VAULT_MAX_OBJECT_MB", "500")) * 1024 * 1024

HTTP_TIMEOUT = float(os.getenv("VAULT_HTTP_TIMEOUT", "30"))

# Proxy configuration for all outgoing requests
PROXY_URL = os.getenv("VAULT_PROXY_URL")

# When set, secret keys in the registry are stored encrypted
MASTER_KEY = os.getenv("VAULT_MASTER_KEY")

# Default quota of a free-tier project
DEFAULT_STORAGE_LIMIT = 1024 ** 3

# User the CLI acts for
USER_ID = os.getenv("VAULT_USER_ID")
