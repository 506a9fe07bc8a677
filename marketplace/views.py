from django.http import JsonResponse


def error_404_view(request, exception):
    return JsonResponse({"ok": False, "error": "not_found", "path": request.path}, status=404)


def error_500_view(request):
    return JsonResponse({"ok": False, "error": "server_error"}, status=500)
