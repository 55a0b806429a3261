from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from notifications.serializers import NotificationSerializer
from notifications.services import dispatcher


class NotificationListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        notifications = dispatcher.list_for_user(request.user.id)
        return Response(
            {
                "unread": dispatcher.unread_count(request.user.id),
                "notifications": NotificationSerializer(notifications, many=True).data,
            }
        )


class NotificationReadView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, notification_id, *args, **kwargs):
        dispatcher.mark_read(notification_id, request.user.id)
        return Response({"detail": "Notification marked as read."}, status=status.HTTP_200_OK)
