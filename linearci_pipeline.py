# linearci_pipeline.py
# Build, test, archive, provision, configure and deploy the web application.
from __future__ import annotations

from linearci import java_deploy_pipeline
from linearci.settings import load_settings


def pipeline():
    return java_deploy_pipeline(load_settings())
