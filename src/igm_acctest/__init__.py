"""
Acceptance tests for the Terraform google_compute_instance_group_manager resource.

Package layout:
    harness            Step runner (apply, check, import, destroy)
    terraform_runner   Terraform CLI wrapper
    configs            Step configurations
    checks             Check functions comparing state with the Compute API
    compute            Compute Engine discovery client
    state              `terraform show -json` parsing and attribute flattening
    sweeper            Cleanup of leaked test resources
"""
