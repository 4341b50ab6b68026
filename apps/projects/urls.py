from django.urls import path
from . import views

app_name = 'projects'

urlpatterns = [

    # Projects
    path('', views.project_list_view, name='project_list'),
    path('create/', views.project_create_view, name='project_create'),
    path('<int:pk>/', views.project_detail_view, name='project_detail'),
    path('<int:pk>/edit/', views.project_edit_view, name='project_edit'),
    path('<int:pk>/status/', views.project_change_status_view, name='project_change_status'),
    path('<int:pk>/delete/', views.project_delete_view, name='project_delete'),
    path('<int:pk>/clone/', views.project_clone_view, name='project_clone'),
    path('<int:pk>/report/', views.project_report_view, name='project_report'),

    # Stages
    path('<int:pk>/stages/add/', views.stage_add_view, name='stage_add'),
    path('<int:pk>/stages/defaults/', views.stage_add_defaults_view, name='stage_add_defaults'),
    path('<int:pk>/stages/reorder/', views.stage_reorder_view, name='stage_reorder'),
    path('stages/<int:stage_id>/edit/', views.stage_edit_view, name='stage_edit'),
    path('stages/<int:stage_id>/status/', views.stage_change_status_view, name='stage_change_status'),
    path('stages/<int:stage_id>/delete/', views.stage_delete_view, name='stage_delete'),

    # Timer
    path('stages/<int:stage_id>/timer/start/', views.timer_start_view, name='timer_start'),
    path('stages/<int:stage_id>/timer/stop/', views.timer_stop_view, name='timer_stop'),
    path('stages/<int:stage_id>/timer/reset/', views.timer_reset_view, name='timer_reset'),
    path('stages/<int:stage_id>/time/', views.stage_edit_time_view, name='stage_edit_time'),

    # Images
    path('stages/<int:stage_id>/images/upload/', views.stage_image_upload_view, name='stage_image_upload'),
    path('images/<int:image_id>/delete/', views.stage_image_delete_view, name='stage_image_delete'),

    # Stage templates
    path('templates/', views.template_list_view, name='template_list'),
    path('templates/add/', views.template_add_view, name='template_add'),
    path('templates/reorder/', views.template_reorder_view, name='template_reorder'),
    path('templates/<int:template_id>/rename/', views.template_rename_view, name='template_rename'),
    path('templates/<int:template_id>/delete/', views.template_delete_view, name='template_delete'),
]
