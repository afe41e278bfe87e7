from django.urls import path

from .views import control_message_view, sync_trigger_view

app_name = "regensync"

urlpatterns = [
    path("control/", control_message_view, name="control"),
    path("sync/", sync_trigger_view, name="sync"),
]
