# app/middleware/cors.py
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
}


class CorsMiddleware(BaseHTTPMiddleware):
    """
    Answers every OPTIONS preflight with 204 and stamps the CORS headers on
    all other responses, errors included.
    """

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)

        response: Response = await call_next(request)
        for key, value in CORS_HEADERS.items():
            response.headers[key] = value
        return response
