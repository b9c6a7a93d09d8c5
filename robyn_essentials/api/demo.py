"""Demo endpoints exercising the request helpers behind the CORS middleware."""

from robyn import status_codes

from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.core.request import RequestReader, connection_info, http_method, read_json
from robyn_essentials.core.router import Router
from robyn_essentials.core.settings import settings as st
from robyn_essentials.forms.parser import read_form_data
from robyn_essentials.middlewares.cors import cors_headers, origin_allow_all, origin_one_of
from robyn_essentials.models.core import Response

PREVIEW_BYTES = 50

router = Router(
    __file__,
    middlewares=[
        cors_headers(
            origin_checker=origin_one_of(st.CORS_ALLOWED_ORIGINS) if st.CORS_ALLOWED_ORIGINS else origin_allow_all,
            added_headers={"X-API-Version": st.API_VERSION},
        )
    ],
)


async def hello(request: RequestReader) -> Response:
    return Response.ok("Hello from robyn-essentials!")


async def method(request: RequestReader) -> Response:
    return Response.ok(f"HTTP Method: {http_method(request)}")


async def info(request: RequestReader) -> Response | dict:
    conn = connection_info(request)
    if conn is None:
        return Response.ok("No connection info available")
    return conn.model_dump(exclude_none=True)


async def post_json(request: RequestReader) -> Response:
    data = await read_json(request)
    match data:
        case dict():
            name = data.get("name", "Anonymous")
            age = data.get("age")
            return Response.ok(f"Hello {name}{f', age {age}' if age is not None else ''}!")
        case list():
            return Response.ok(f"Received list with {len(data)} items")
        case _:
            return Response.ok(f"Received: {data}")


async def post_form(request: RequestReader) -> Response:
    with await read_form_data(request) as form:
        return Response.ok(
            "Form received:\n"
            f"Username: {form.fields.get('username', 'Unknown')}\n"
            f"Email: {form.fields.get('email', 'No email')}\n"
            f"Message: {form.fields.get('message', 'No message')}"
        )


async def upload(request: RequestReader) -> Response:
    with await read_form_data(request) as form:
        if not form.files:
            return Response(status_code=status_codes.HTTP_400_BAD_REQUEST, body="No files uploaded")

        results = []
        for field_name, uploaded in form.files.items():
            data = await uploaded.read_as_bytes()
            logger.info("File received", icon=LogIcon.FILE, field=field_name, size=len(data))
            results.append(
                f"Field: {field_name}\n"
                f"  Name: {uploaded.name}\n"
                f"  Content-Type: {uploaded.content_type}\n"
                f"  Size: {len(data)} bytes\n"
                f"  First {PREVIEW_BYTES} bytes: {data[:PREVIEW_BYTES].hex(' ')}"
            )
    return Response.ok("Files uploaded:\n\n" + "\n\n".join(results))


async def not_supported(request: RequestReader) -> Response:
    return Response(status_code=status_codes.HTTP_404_NOT_FOUND, body="Method not supported")


ROUTES = {
    "/hello": (router.get, hello),
    "/method": (router.get, method),
    "/info": (router.get, info),
    "/json": (router.post, post_json),
    "/form": (router.post, post_form),
    "/upload": (router.post, upload),
}

for path, (register, handler) in ROUTES.items():
    register(path)(handler)
    # Preflight requests are answered by the CORS middleware before reaching the handler
    router.options(path)(not_supported)
