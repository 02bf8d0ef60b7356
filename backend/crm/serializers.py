"""
DRF serializers for API request/response validation.
Separates API contract from DB models.
"""
import math

from rest_framework import serializers
from crm.models import (
    Contact, Pipeline, Stage, ContactStage,
    Automation, AutomationStep, AutomationLog, TriggerType, StepType,
    EmailTemplate, EmailCampaign, EmailCampaignRecipient, Task,
    Note, NoteRevision,
)
from crm.services.steps import DELAY_UNITS


# ─── Contact Serializers ─────────────────────────────────────────────────────

class ContactCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=1, max_length=200)
    email = serializers.EmailField(required=False, allow_null=True)
    phone = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=40)
    tags = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    stage_id = serializers.UUIDField(required=False, allow_null=True)


class ContactUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contact
        fields = ['name', 'email', 'phone', 'tags']
        extra_kwargs = {field: {'required': False} for field in fields}

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("tags must be a list of strings")
        return list(dict.fromkeys(value))


class StageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Stage
        fields = ['id', 'name', 'position']


class ContactStageSerializer(serializers.ModelSerializer):
    stage = StageSerializer(read_only=True)

    class Meta:
        model = ContactStage
        fields = ['id', 'stage', 'assigned_at']


class ContactSerializer(serializers.ModelSerializer):
    current_stage = serializers.SerializerMethodField()

    class Meta:
        model = Contact
        fields = ['id', 'name', 'email', 'phone', 'tags', 'current_stage', 'created_at', 'updated_at']

    def get_current_stage(self, contact):
        assignment = contact.current_stage_assignment
        return StageSerializer(assignment.stage).data if assignment else None


class StageMoveSerializer(serializers.Serializer):
    stage_id = serializers.UUIDField()


# ─── Pipeline Serializers ────────────────────────────────────────────────────

class PipelineSerializer(serializers.ModelSerializer):
    stages = StageSerializer(many=True, read_only=True)

    class Meta:
        model = Pipeline
        fields = ['id', 'name', 'stages', 'created_at']


class PipelineCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=200)
    stages = serializers.ListField(
        child=serializers.CharField(min_length=1, max_length=100),
        min_length=1,
        required=False,
        default=lambda: ["New", "Contacted", "Qualified", "Won"],
    )


class StageCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=1, max_length=100)


class StageReorderSerializer(serializers.Serializer):
    stage_order = serializers.ListField(child=serializers.UUIDField())


# ─── Automation Serializers ──────────────────────────────────────────────────

def _is_number(value):
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def validate_step_config(step_type, config):
    """Shape checks for the keys each step type reads from its config."""
    if step_type == StepType.DELAY:
        amount = config.get("amount")
        if amount is not None and (not _is_number(amount) or float(amount) < 0):
            raise serializers.ValidationError({"amount": "Must be a non-negative number"})
        unit = config.get("unit")
        if unit is not None and (not isinstance(unit, str) or unit not in DELAY_UNITS):
            raise serializers.ValidationError({"unit": f"Must be one of {', '.join(DELAY_UNITS)}"})

    elif step_type == StepType.UPDATE_TAGS:
        tags = config.get("tags")
        if tags is not None and (not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags)):
            raise serializers.ValidationError({"tags": "Must be a list of strings"})
        if config.get("action") not in (None, "add", "remove"):
            raise serializers.ValidationError({"action": "Must be add or remove"})

    elif step_type == StepType.MOVE_STAGE:
        if not isinstance(config.get("stageId"), str) or not config["stageId"]:
            raise serializers.ValidationError({"stageId": "This field is required"})

    return config


def validate_trigger_config(trigger_type, config):
    if not isinstance(config, dict):
        raise serializers.ValidationError("trigger_config must be an object")
    if trigger_type == TriggerType.DATE:
        offset = config.get("offsetDays", 0)
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise serializers.ValidationError({"offsetDays": "Must be an integer"})
    elif trigger_type == TriggerType.STAGE_CHANGE:
        stage_id = config.get("stageId")
        if stage_id is not None and not isinstance(stage_id, str):
            raise serializers.ValidationError({"stageId": "Must be a string"})
    return config


class AutomationStepInputSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=StepType.choices)
    position = serializers.IntegerField(min_value=0)
    config = serializers.DictField(required=False, default=dict)

    def validate(self, attrs):
        validate_step_config(attrs["type"], attrs.get("config") or {})
        return attrs


def validate_step_positions(steps):
    """Positions must be exactly 0..n-1, each used once."""
    positions = sorted(step["position"] for step in steps)
    if positions != list(range(len(steps))):
        raise serializers.ValidationError("Step positions must be unique and contiguous from 0")
    return steps


class AutomationStepSerializer(serializers.ModelSerializer):
    class Meta:
        model = AutomationStep
        fields = ['id', 'type', 'position', 'config']


class AutomationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=200)
    active = serializers.BooleanField(required=False, default=True)
    trigger_type = serializers.ChoiceField(choices=TriggerType.choices)
    trigger_config = serializers.DictField(required=False, default=dict)
    steps = AutomationStepInputSerializer(many=True, allow_empty=False)

    def validate_steps(self, value):
        return validate_step_positions(value)

    def validate(self, attrs):
        validate_trigger_config(attrs["trigger_type"], attrs.get("trigger_config"))
        return attrs


class AutomationUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Automation
        fields = ['name', 'active', 'trigger_type', 'trigger_config']
        extra_kwargs = {field: {'required': False} for field in fields}

    def validate(self, attrs):
        trigger_type = attrs.get("trigger_type", getattr(self.instance, "trigger_type", None))
        trigger_config = attrs.get("trigger_config", getattr(self.instance, "trigger_config", {}))
        validate_trigger_config(trigger_type, trigger_config)
        return attrs


class AutomationStepsReplaceSerializer(serializers.Serializer):
    steps = AutomationStepInputSerializer(many=True)

    def validate_steps(self, value):
        return validate_step_positions(value)


class AutomationLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AutomationLog
        fields = [
            'id', 'automation_id', 'contact_id', 'step_id', 'status',
            'scheduled_for', 'processed_at', 'message', 'timestamp',
        ]


class AutomationSerializer(serializers.ModelSerializer):
    steps = AutomationStepSerializer(many=True, read_only=True)
    recent_logs = serializers.SerializerMethodField()

    class Meta:
        model = Automation
        fields = [
            'id', 'name', 'active', 'trigger_type', 'trigger_config',
            'steps', 'recent_logs', 'created_at', 'updated_at',
        ]

    def get_recent_logs(self, automation):
        logs = automation.logs.order_by("-timestamp")[:10]
        return AutomationLogSerializer(logs, many=True).data


# ─── Template Serializers ────────────────────────────────────────────────────

class EmailTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailTemplate
        fields = ['id', 'name', 'subject', 'body', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            'name': {'min_length': 2},
            'subject': {'min_length': 1},
        }


# ─── Campaign Serializers ────────────────────────────────────────────────────

class EmailCampaignRecipientSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailCampaignRecipient
        fields = ['id', 'contact_id', 'status', 'sent_at', 'opened_at', 'clicked_at']


class EmailCampaignSerializer(serializers.ModelSerializer):
    recipients = EmailCampaignRecipientSerializer(many=True, read_only=True)

    class Meta:
        model = EmailCampaign
        fields = [
            'id', 'name', 'subject', 'body', 'status', 'scheduled_for',
            'recipients', 'created_at', 'updated_at',
        ]


class EmailCampaignCreateSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=200)
    subject = serializers.CharField(min_length=1, max_length=300)
    body = serializers.CharField(min_length=1)
    contact_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    scheduled_for = serializers.DateTimeField(required=False, allow_null=True)


# ─── Task Serializers ────────────────────────────────────────────────────────

class TaskSerializer(serializers.ModelSerializer):
    contact_id = serializers.UUIDField(required=False, allow_null=True)

    class Meta:
        model = Task
        fields = ['id', 'title', 'contact_id', 'due_date', 'completed', 'notification_sent', 'created_at']
        read_only_fields = ['id', 'notification_sent', 'created_at']
        extra_kwargs = {'title': {'min_length': 2}}


# ─── Note Serializers ────────────────────────────────────────────────────────

class NoteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Note
        fields = ['id', 'contact_id', 'content', 'created_at', 'updated_at']


class NoteRevisionSerializer(serializers.ModelSerializer):
    class Meta:
        model = NoteRevision
        fields = ['id', 'note_id', 'content', 'created_at']


class NoteContentSerializer(serializers.Serializer):
    content = serializers.CharField(min_length=1)


# ─── Cron Serializers ────────────────────────────────────────────────────────

class CronRunSerializer(serializers.Serializer):
    secret = serializers.CharField(required=False, allow_blank=True, default="")
