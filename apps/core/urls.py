from django.urls import path
from . import views


app_name = 'core'

urlpatterns = [

    # Environment administration (global admin)
    path('admin-panel/environments/', views.environment_list_view, name='environment_list'),
    path('admin-panel/environments/create/', views.environment_create_view, name='environment_create'),
    path('admin-panel/environments/clear-selection/', views.environment_clear_selection_view, name='environment_clear_selection'),
    path('admin-panel/environments/<int:pk>/edit/', views.environment_edit_view, name='environment_edit'),
    path('admin-panel/environments/<int:pk>/toggle-status/', views.environment_toggle_status_view, name='environment_toggle_status'),
    path('admin-panel/environments/<int:pk>/delete/', views.environment_delete_view, name='environment_delete'),
    path('admin-panel/environments/<int:pk>/select/', views.environment_select_view, name='environment_select'),
    path('admin-panel/environments/<int:pk>/users/', views.environment_users_view, name='environment_users'),

    # Settings & data management (owner / admin)
    path('settings/', views.settings_view, name='settings'),
    path('settings/update/', views.settings_update_view, name='settings_update'),
    path('settings/images/upload/', views.settings_image_upload_view, name='settings_image_upload'),
    path('settings/images/remove/', views.settings_image_remove_view, name='settings_image_remove'),
    path('settings/backup/export/', views.backup_export_view, name='backup_export'),
    path('settings/backup/import/', views.backup_import_view, name='backup_import'),

    # Dashboard (manager / owner / admin)
    path('dashboard/', views.dashboard_view, name='dashboard'),
    path('dashboard/key-indicators/', views.key_indicators_view, name='key_indicators'),
    path('dashboard/financial-analysis/', views.financial_analysis_view, name='financial_analysis'),
    path('dashboard/crm-analytics/', views.crm_analytics_view, name='crm_analytics'),
    path('dashboard/revenue-chart/', views.revenue_chart_view, name='revenue_chart'),
    path('dashboard/sales-pipeline/', views.sales_pipeline_view, name='sales_pipeline'),
    path('dashboard/project-types/', views.project_type_distribution_view, name='project_type_distribution'),
]
