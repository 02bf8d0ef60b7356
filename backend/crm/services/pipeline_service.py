"""Pipeline helpers: default board creation and stage moves."""
import logging

from crm.models.pipeline import Pipeline, Stage, ContactStage

logger = logging.getLogger(__name__)

DEFAULT_STAGES = ["New", "Contacted", "Qualified", "Won"]


def ensure_default_pipeline(user_id) -> Pipeline:
    """Return the tenant's first pipeline, creating "Sales Pipeline" if none exists."""
    existing = Pipeline.objects.filter(user_id=user_id).order_by("created_at").first()
    if existing:
        return existing

    pipeline = Pipeline.objects.create(user_id=user_id, name="Sales Pipeline")
    Stage.objects.bulk_create([
        Stage(pipeline=pipeline, name=name, position=index)
        for index, name in enumerate(DEFAULT_STAGES)
    ])
    logger.info("Created default pipeline for user %s", user_id)
    return pipeline


def first_stage(pipeline: Pipeline) -> Stage | None:
    return pipeline.stages.order_by("position").first()


def assign_stage(contact_id, stage_id) -> ContactStage:
    """Append a stage assignment. The newest row is the contact's current stage."""
    return ContactStage.objects.create(contact_id=contact_id, stage_id=stage_id)
