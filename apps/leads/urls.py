from django.urls import path
from . import views

app_name = 'leads'

urlpatterns = [

    # Board & leads
    path('', views.board_view, name='board'),
    path('leads/create/', views.lead_create_view, name='lead_create'),
    path('leads/export/', views.lead_export_view, name='lead_export'),
    path('leads/<int:pk>/', views.lead_detail_view, name='lead_detail'),
    path('leads/<int:pk>/edit/', views.lead_edit_view, name='lead_edit'),
    path('leads/<int:pk>/delete/', views.lead_delete_view, name='lead_delete'),
    path('leads/<int:pk>/move/', views.lead_move_view, name='lead_move'),

    # Columns
    path('columns/add/', views.column_add_view, name='column_add'),
    path('columns/reorder/', views.column_reorder_view, name='column_reorder'),
    path('columns/<slug:key>/rename/', views.column_rename_view, name='column_rename'),
    path('columns/<slug:key>/delete/', views.column_delete_view, name='column_delete'),

    # Proposals
    path('leads/<int:pk>/proposals/create/', views.proposal_create_view, name='proposal_create'),
    path('proposals/<int:proposal_id>/edit/', views.proposal_edit_view, name='proposal_edit'),
    path('proposals/<int:proposal_id>/send/', views.proposal_mark_sent_view, name='proposal_mark_sent'),
    path('proposals/<int:proposal_id>/status/', views.proposal_change_status_view, name='proposal_change_status'),
    path('proposals/<int:proposal_id>/delete/', views.proposal_delete_view, name='proposal_delete'),
    path('proposals/<int:proposal_id>/convert/', views.proposal_convert_view, name='proposal_convert'),
    path('proposals/<int:proposal_id>/pdf/', views.proposal_pdf_view, name='proposal_pdf'),

    # Interactions & appointments
    path('leads/<int:pk>/interactions/add/', views.interaction_add_view, name='interaction_add'),
    path('interactions/<int:interaction_id>/delete/', views.interaction_delete_view, name='interaction_delete'),
    path('leads/<int:pk>/appointments/add/', views.appointment_add_view, name='appointment_add'),
    path('appointments/<int:appointment_id>/status/', views.appointment_change_status_view, name='appointment_change_status'),
    path('appointments/<int:appointment_id>/delete/', views.appointment_delete_view, name='appointment_delete'),
]
