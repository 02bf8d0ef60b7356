"""
App URL configuration for the SimpleAutomate API.
"""
from django.urls import path
from crm.api import (
    automations, campaigns, contacts, cron, dashboard, notes, pipelines, tasks, templates,
)

urlpatterns = [
    # Contacts
    path('contacts/', contacts.ContactListCreateView.as_view()),
    path('contacts/<uuid:contact_id>', contacts.ContactDetailView.as_view()),
    path('contacts/<uuid:contact_id>/stage', contacts.ContactStageView.as_view()),

    # Automations
    path('automations/', automations.AutomationListCreateView.as_view()),
    path('automations/<uuid:automation_id>', automations.AutomationDetailView.as_view()),
    path('automations/<uuid:automation_id>/steps', automations.AutomationStepsView.as_view()),
    path('automations/<uuid:automation_id>/logs', automations.AutomationLogsView.as_view()),

    # Pipelines
    path('pipelines/', pipelines.PipelineListCreateView.as_view()),
    path('pipelines/board', pipelines.PipelineBoardView.as_view()),
    path('pipelines/<uuid:pipeline_id>/stages', pipelines.PipelineStageCreateView.as_view()),
    path('pipelines/<uuid:pipeline_id>/stages/reorder', pipelines.PipelineStageReorderView.as_view()),

    # Templates
    path('templates/', templates.TemplateListCreateView.as_view()),
    path('templates/<uuid:template_id>', templates.TemplateDetailView.as_view()),

    # Campaigns
    path('campaigns/', campaigns.CampaignListCreateView.as_view()),
    path('campaigns/<uuid:campaign_id>', campaigns.CampaignDetailView.as_view()),

    # Tasks
    path('tasks/', tasks.TaskListCreateView.as_view()),
    path('tasks/<uuid:task_id>', tasks.TaskDetailView.as_view()),

    # Notes
    path('notes/contacts/<uuid:contact_id>', notes.ContactNotesView.as_view()),
    path('notes/<uuid:note_id>', notes.NoteDetailView.as_view()),
    path('notes/<uuid:note_id>/revisions', notes.NoteRevisionsView.as_view()),

    # Dashboard
    path('dashboard', dashboard.DashboardView.as_view()),

    # Periodic sweep trigger
    path('cron/run', cron.CronRunView.as_view()),
]
