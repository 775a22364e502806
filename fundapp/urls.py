# fundapp/urls.py

from django.urls import path

from fundapp import views

urlpatterns = [

    # ===================== TARGETS =====================
    path('targets/', views.assign_target, name='assign_target'),
    path('targets/<int:target_id>/divide/', views.divide_target, name='divide_target'),
    path('targets/<int:target_id>/cancel/', views.cancel_target, name='cancel_target'),
    path('targets/progress/<str:user_id>/', views.target_progress, name='target_progress'),
    path('targets/summary/<str:user_id>/', views.target_summary, name='target_summary'),

    # ===================== COLLECTIONS =====================
    path('collections/', views.record_collection, name='record_collection'),
    path('collections/<int:transaction_id>/verify/', views.verify_collection, name='verify_collection'),
    path('collections/<int:transaction_id>/reject/', views.reject_collection, name='reject_collection'),

    # ===================== COMMISSIONS =====================
    path('donations/', views.process_donation, name='process_donation'),
    path('donations/<str:donation_id>/commissions/', views.donation_commissions, name='donation_commissions'),

    # ===================== LEADERBOARD =====================
    path('leaderboard/', views.leaderboard, name='leaderboard'),
    path('team/<str:user_id>/performance/', views.team_performance, name='team_performance'),
]
