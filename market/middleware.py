from revpilot.logging import accept_request_id, request_context


class RequestContextMiddleware:
    def __init__(self, get_response):  # noqa: ANN001
        self.get_response = get_response

    def __call__(self, request):  # noqa: ANN001
        request_id = accept_request_id(request.headers.get("X-Request-ID"))
        with request_context(request_id=request_id, endpoint=request.path):
            response = self.get_response(request)
        response["X-Request-ID"] = request_id
        return response
