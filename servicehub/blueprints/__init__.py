"""
ServiceHub
Blueprint registry and helpers shared by the route modules.
"""

from flask import current_app

from servicehub.config import stats_config_from_app_config, workflow_config_from_app_config


def current_stats_config():
    return stats_config_from_app_config(current_app.config)


def current_workflow_config():
    return workflow_config_from_app_config(current_app.config)
