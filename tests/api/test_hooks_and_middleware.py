"""Hooks & Middleware — caller extension points around the generated handlers.

Invariants verified:
    - before_query can narrow the query; record hooks see the ORM record
    - An exception inside a hook is a 500 in the errors envelope
    - Pre middleware run before every route and can reject the request
    - Post middleware see the finished response and may replace it
    - disable_body_parser leaves body decoding to the host
"""

import pytest
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from modelrest import Hooks, MiddlewareChain, create_controller
from modelrest.core.query_builder import Equals
from tests.models import Post


# ─── hooks ───────────────────────────────────────────────────────

async def test_before_query_narrows_results(make_client, seed):
    def only_author_two(query, params):
        query.where["author_id"] = Equals("2")

    client = make_client(create_controller(
        Post, hooks=Hooks(before_query=only_author_two),
    ))
    res = await client.get("/posts")
    assert [p["id"] for p in res.json()["posts"]] == [3]


async def test_before_query_sees_request(make_client, seed):
    seen = []

    def record_header(query, params):
        seen.append(params.request.headers.get("x-tenant"))

    client = make_client(create_controller(
        Post, hooks=Hooks(before_query=record_header),
    ))
    await client.get("/posts/1", headers={"X-Tenant": "acme"})
    assert seen == ["acme"]


async def test_after_create_receives_model_and_record(make_client, seed):
    calls = []
    client = make_client(create_controller(
        Post, hooks=Hooks(after_create=lambda model, record: calls.append((model, record.title))),
    ))
    res = await client.post("/posts", json={"post": {"title": "Hooked"}})
    assert res.status_code == 201
    assert calls == [(Post, "Hooked")]


async def test_before_update_can_modify_record(make_client, seed):
    def stamp(model, record):
        record.description = "stamped"

    client = make_client(create_controller(Post, hooks=Hooks(before_update=stamp)))
    res = await client.put("/posts/1", json={"post": {"title": "Edited"}})
    assert res.status_code == 200
    assert res.json()["post"]["description"] == "stamped"


async def test_after_update_sees_saved_record(make_client, seed):
    titles = []
    client = make_client(create_controller(
        Post, hooks=Hooks(after_update=lambda model, record: titles.append(record.title)),
    ))
    await client.put("/posts/2", json={"post": {"title": "Saved"}})
    assert titles == ["Saved"]


async def test_hook_exception_is_500(make_client, seed):
    def explode(model, record):
        raise RuntimeError("hook exploded")

    client = make_client(create_controller(Post, hooks=Hooks(after_create=explode)))
    res = await client.post("/posts", json={"post": {"title": "X"}})
    assert res.status_code == 500
    assert res.json() == {"errors": [{"message": "hook exploded"}]}


# ─── middleware ──────────────────────────────────────────────────

async def test_pre_middleware_can_reject(make_client, seed):
    async def require_token(request: Request):
        if request.headers.get("authorization") != "Bearer ok":
            raise HTTPException(status_code=401, detail="unauthorized")

    client = make_client(create_controller(
        Post, middleware=MiddlewareChain(pre=(require_token,)),
    ))
    assert (await client.get("/posts")).status_code == 401
    res = await client.get("/posts", headers={"Authorization": "Bearer ok"})
    assert res.status_code == 200


async def test_pre_middleware_run_in_order(make_client, seed):
    order = []

    async def first(request: Request):
        order.append("first")

    async def second(request: Request):
        order.append("second")

    client = make_client(create_controller(
        Post, middleware={"pre": [first, second]},
    ))
    await client.get("/posts/1")
    assert order == ["first", "second"]


async def test_post_middleware_decorates_response(make_client, seed):
    def add_header(request, response):
        response.headers["X-Served-By"] = "modelrest"

    client = make_client(create_controller(
        Post, middleware=MiddlewareChain(post=(add_header,)),
    ))
    res = await client.get("/posts/404")
    assert res.status_code == 404
    assert res.headers["x-served-by"] == "modelrest"


async def test_post_middleware_can_replace_response(make_client, seed):
    async def wrap(request, response):
        return JSONResponse(status_code=response.status_code, content={"wrapped": True})

    client = make_client(create_controller(
        Post, middleware=MiddlewareChain(post=(wrap,)),
    ))
    res = await client.get("/posts/1")
    assert res.status_code == 200
    assert res.json() == {"wrapped": True}


# ─── body parser ─────────────────────────────────────────────────

async def test_disabled_body_parser_without_host_parser_is_422(make_client, seed):
    client = make_client(create_controller(Post, disable_body_parser=True))
    res = await client.post("/posts", json={"post": {"title": "X"}})
    assert res.status_code == 422
    assert res.json()["errors"][0]["field"] == "post"


async def test_disabled_body_parser_uses_host_parsed_body(make_client, seed):
    async def host_parser(request: Request):
        payload = await request.json()
        payload["post"]["description"] = "from host"
        request.state.body = payload

    client = make_client(create_controller(
        Post,
        disable_body_parser=True,
        middleware=MiddlewareChain(pre=(host_parser,)),
    ))
    res = await client.post("/posts", json={"post": {"title": "X"}})
    assert res.status_code == 201
    assert res.json()["post"]["description"] == "from host"


@pytest.mark.parametrize("method", ["get", "delete"])
async def test_body_not_parsed_for_bodyless_methods(make_client, seed, method):
    client = make_client(create_controller(Post))
    res = await getattr(client, method)("/posts/3")
    assert res.status_code == 200
