from .dsl import sh, always, stage, StageBuilder, build, linear, checkout, archive, junit
from .runner import run_pipeline, load_pipeline
from .model import Pipeline, Stage, Step
from .standard import java_deploy_pipeline

__all__ = [
    "sh",
    "always",
    "stage",
    "StageBuilder",
    "build",
    "linear",
    "checkout",
    "archive",
    "junit",
    "run_pipeline",
    "load_pipeline",
    "Pipeline",
    "Stage",
    "Step",
    "java_deploy_pipeline",
]
