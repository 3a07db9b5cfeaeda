# ==========================================
# Terraform resource types
# ==========================================

IGM_RESOURCE_TYPE = "google_compute_instance_group_manager"
INSTANCE_TEMPLATE_RESOURCE_TYPE = "google_compute_instance_template"
TARGET_POOL_RESOURCE_TYPE = "google_compute_target_pool"
HTTP_HEALTH_CHECK_RESOURCE_TYPE = "google_compute_http_health_check"
AUTOSCALER_RESOURCE_TYPE = "google_compute_autoscaler"

# ==========================================
# Fixture values
# ==========================================

TEST_NAME_PREFIX = "igm-test"
RAND_STRING_LENGTH = 10

# The fixtures pin zones in this region, so the pre-check enforces it.
REQUIRED_REGION = "us-central1"
DEFAULT_ZONE = "us-central1-c"
SECONDARY_ZONE = "us-west1-b"

MACHINE_TYPE = "n1-standard-1"
SOURCE_IMAGE = "debian-cloud/debian-11"
SERVICE_ACCOUNT_SCOPES = ["userinfo-email", "compute-ro", "storage-ro"]

# ==========================================
# Terraform workspace
# ==========================================

CONFIG_FILE_NAME = "main.tf"
DEFAULT_PROVIDER_VERSION = "~> 1.20"

COMPUTE_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
