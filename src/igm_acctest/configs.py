"""
Terraform configurations for instance group manager acceptance tests.

Each public function returns the configuration text for one test step.
Configurations are assembled from small resource-block builders so the
fixtures share one definition of the instance template, target pool,
health check and autoscaler they are built from.

Usage:
    from igm_acctest import configs

    text = configs.render(configs.update(template, target, igm), provider_version="~> 1.20")
"""

import json
from typing import Iterable, Optional

from . import constants as CONSTANTS


def _hcl_list(items: Iterable[str]) -> str:
    return json.dumps(list(items))


def _ref(resource_type: str, label: str, attribute: str = "self_link") -> str:
    return f"{resource_type}.{label}.{attribute}"


def provider_block(provider_version: str = CONSTANTS.DEFAULT_PROVIDER_VERSION) -> str:
    """Provider requirements; project, region and credentials come from the environment."""
    return f'''terraform {{
  required_providers {{
    google = {{
      source  = "hashicorp/google"
      version = "{provider_version}"
    }}
  }}
}}

provider "google" {{}}
'''


def render(config: str, provider_version: str = CONSTANTS.DEFAULT_PROVIDER_VERSION) -> str:
    """Full main.tf contents: provider block followed by the step configuration."""
    return provider_block(provider_version) + "\n" + config.strip() + "\n"


# ==========================================
# Resource block builders
# ==========================================

def _instance_template(
    label: str,
    name: Optional[str] = None,
    tags: Iterable[str] = ("foo", "bar"),
    metadata: bool = True,
    service_account: bool = True,
    create_before_destroy: bool = False,
) -> str:
    lines = [f'resource "{CONSTANTS.INSTANCE_TEMPLATE_RESOURCE_TYPE}" "{label}" {{']
    if name:
        lines.append(f'  name           = "{name}"')
    lines += [
        f'  machine_type   = "{CONSTANTS.MACHINE_TYPE}"',
        '  can_ip_forward = false',
        f'  tags           = {_hcl_list(tags)}',
        '',
        '  disk {',
        f'    source_image = "{CONSTANTS.SOURCE_IMAGE}"',
        '    auto_delete  = true',
        '    boot         = true',
        '  }',
        '',
        '  network_interface {',
        '    network = "default"',
        '  }',
    ]
    if metadata:
        lines += ['', '  metadata = {', '    foo = "bar"', '  }']
    if service_account:
        lines += [
            '',
            '  service_account {',
            f'    scopes = {_hcl_list(CONSTANTS.SERVICE_ACCOUNT_SCOPES)}',
            '  }',
        ]
    if create_before_destroy:
        lines += ['', '  lifecycle {', '    create_before_destroy = true', '  }']
    lines.append('}')
    return "\n".join(lines) + "\n"


def _target_pool(label: str, name: str) -> str:
    return f'''resource "{CONSTANTS.TARGET_POOL_RESOURCE_TYPE}" "{label}" {{
  description      = "Resource created for Terraform acceptance testing"
  name             = "{name}"
  session_affinity = "CLIENT_IP_PROTO"
}}
'''


def _http_health_check(label: str, name: str) -> str:
    return f'''resource "{CONSTANTS.HTTP_HEALTH_CHECK_RESOURCE_TYPE}" "{label}" {{
  name               = "{name}"
  request_path       = "/"
  check_interval_sec = 1
  timeout_sec        = 1
}}
'''


def _autoscaler(label: str, name: str, target_label: str) -> str:
    target = _ref(CONSTANTS.IGM_RESOURCE_TYPE, target_label)
    return f'''resource "{CONSTANTS.AUTOSCALER_RESOURCE_TYPE}" "{label}" {{
  name   = "{name}"
  zone   = "{CONSTANTS.DEFAULT_ZONE}"
  target = {target}

  autoscaling_policy {{
    max_replicas    = 10
    min_replicas    = 1
    cooldown_period = 60

    cpu_utilization {{
      target = 0.5
    }}
  }}
}}
'''


def _named_port(name: str, port: int) -> str:
    return f'''

  named_port {{
    name = "{name}"
    port = {port}
  }}'''


def _instance_group_manager(
    label: str,
    name: str,
    template_label: str,
    base_instance_name: str,
    zone: str = CONSTANTS.DEFAULT_ZONE,
    target_size: Optional[int] = None,
    target_pool_labels: Iterable[str] = (),
    named_ports: Iterable[tuple[str, int]] = (),
    extra: str = "",
) -> str:
    lines = [
        f'resource "{CONSTANTS.IGM_RESOURCE_TYPE}" "{label}" {{',
        '  description        = "Terraform test instance group manager"',
        f'  name               = "{name}"',
        f'  instance_template  = {_ref(CONSTANTS.INSTANCE_TEMPLATE_RESOURCE_TYPE, template_label)}',
    ]
    pools = [_ref(CONSTANTS.TARGET_POOL_RESOURCE_TYPE, p) for p in target_pool_labels]
    if len(pools) == 1:
        lines.append(f'  target_pools       = [{pools[0]}]')
    elif pools:
        lines.append('  target_pools = [')
        lines += [f'    {pool},' for pool in pools]
        lines.append('  ]')
    lines += [
        f'  base_instance_name = "{base_instance_name}"',
        f'  zone               = "{zone}"',
    ]
    if target_size is not None:
        lines.append(f'  target_size        = {target_size}')

    body = "\n".join(lines)
    body += "".join(_named_port(port_name, port) for port_name, port in named_ports)
    if extra:
        body += "\n" + extra.rstrip()
    return body + "\n}\n"


def _auto_healing_policies(health_check_label: str, initial_delay_sec: int) -> str:
    health_check = _ref(CONSTANTS.HTTP_HEALTH_CHECK_RESOURCE_TYPE, health_check_label)
    return f'''
  auto_healing_policies {{
    health_check      = {health_check}
    initial_delay_sec = {initial_delay_sec}
  }}'''


def _rolling_update_policy(**settings) -> str:
    lines = ['', '  update_strategy = "ROLLING_UPDATE"', '', '  rolling_update_policy {']
    for key, value in settings.items():
        rendered = f'"{value}"' if isinstance(value, str) else value
        lines.append(f'    {key} = {rendered}')
    lines.append('  }')
    return "\n".join(lines)


def _join(*blocks: str) -> str:
    return "\n".join(blocks)


# ==========================================
# Step configurations
# ==========================================

def basic(template: str, target: str, igm1: str, igm2: str) -> str:
    """Two managers sharing a template; only the first uses a target pool."""
    return _join(
        _instance_template("igm-basic", name=template),
        _target_pool("igm-basic", target),
        _instance_group_manager(
            "igm-basic", igm1, "igm-basic", "igm-basic",
            target_size=2, target_pool_labels=["igm-basic"],
        ),
        _instance_group_manager("igm-no-tp", igm2, "igm-basic", "igm-no-tp", target_size=2),
    )


def target_size_zero(template: str, igm: str) -> str:
    """Manager with no target_size, which the API reports as 0."""
    return _join(
        _instance_template("igm-basic", name=template),
        _instance_group_manager("igm-basic", igm, "igm-basic", "igm-basic"),
    )


def update(template: str, target: str, igm: str) -> str:
    return _join(
        _instance_template("igm-update", name=template),
        _target_pool("igm-update", target),
        _instance_group_manager(
            "igm-update", igm, "igm-update", "igm-update",
            target_size=2, target_pool_labels=["igm-update"],
            named_ports=[("customhttp", 8080)],
        ),
    )


def update2(template1: str, target1: str, target2: str, template2: str, igm: str) -> str:
    """Change the manager's instance template, target pools, size and named ports."""
    return _join(
        _instance_template("igm-update", name=template1),
        _target_pool("igm-update", target1),
        _target_pool("igm-update2", target2),
        _instance_template("igm-update2", name=template2),
        _instance_group_manager(
            "igm-update", igm, "igm-update2", "igm-update",
            target_size=3, target_pool_labels=["igm-update", "igm-update2"],
            named_ports=[("customhttp", 8080), ("customhttps", 8443)],
        ),
    )


def update_lifecycle(tag: str, igm: str) -> str:
    """Template replaced via create_before_destroy when its tag changes."""
    return _join(
        _instance_template("igm-update", tags=[tag], metadata=False, create_before_destroy=True),
        _instance_group_manager(
            "igm-update", igm, "igm-update", "igm-update",
            target_size=2, named_ports=[("customhttp", 8080)],
        ),
    )


def update_strategy(igm: str) -> str:
    return _join(
        _instance_template(
            "igm-update-strategy", tags=["terraform-testing"], metadata=False,
            create_before_destroy=True,
        ),
        _instance_group_manager(
            "igm-update-strategy", igm, "igm-update-strategy", "igm-update-strategy",
            target_size=2, named_ports=[("customhttp", 8080)],
            extra='\n  update_strategy = "NONE"',
        ),
    )


def rolling_update_policy(igm: str) -> str:
    """Rolling update policy expressed in percentages."""
    return _join(
        _instance_template(
            "igm-rolling-update-policy", tags=["terraform-testing"], metadata=False,
            create_before_destroy=True,
        ),
        _instance_group_manager(
            "igm-rolling-update-policy", igm, "igm-rolling-update-policy",
            "igm-rolling-update-policy",
            target_size=3, named_ports=[("customhttp", 8080)],
            extra=_rolling_update_policy(
                type="PROACTIVE",
                minimal_action="REPLACE",
                max_surge_percent=50,
                max_unavailable_percent=50,
                min_ready_sec=20,
            ),
        ),
    )


def rolling_update_policy2(igm: str) -> str:
    """Rolling update policy switched to fixed counts; template drops its service account."""
    return _join(
        _instance_template(
            "igm-rolling-update-policy", tags=["terraform-testing"], metadata=False,
            service_account=False, create_before_destroy=True,
        ),
        _instance_group_manager(
            "igm-rolling-update-policy", igm, "igm-rolling-update-policy",
            "igm-rolling-update-policy",
            target_size=3, named_ports=[("customhttp", 8080)],
            extra=_rolling_update_policy(
                type="PROACTIVE",
                minimal_action="REPLACE",
                max_surge_fixed=2,
                max_unavailable_fixed=2,
                min_ready_sec=20,
            ),
        ),
    )


def separate_regions(igm1: str, igm2: str) -> str:
    return _join(
        _instance_template("igm-basic"),
        _instance_group_manager("igm-basic", igm1, "igm-basic", "igm-basic", target_size=2),
        _instance_group_manager(
            "igm-basic-2", igm2, "igm-basic", "igm-basic-2",
            zone=CONSTANTS.SECONDARY_ZONE, target_size=2,
        ),
    )


def auto_healing_policies(template: str, target: str, igm: str, hck: str) -> str:
    return _join(
        _instance_template("igm-basic", name=template),
        _target_pool("igm-basic", target),
        _instance_group_manager(
            "igm-basic", igm, "igm-basic", "igm-basic",
            target_size=2, target_pool_labels=["igm-basic"],
            extra=_auto_healing_policies("zero", 10),
        ),
        _http_health_check("zero", hck),
    )


def self_link_stability(template: str, target: str, igm: str, hck: str, autoscaler: str) -> str:
    """
    A v1-only autoscaler pointing at a manager read through the beta API.

    The plan after apply must be empty, proving the two API versions agree
    on the manager's self link.
    """
    return _join(
        auto_healing_policies(template, target, igm, hck),
        _autoscaler("foobar", autoscaler, "igm-basic"),
    )
