import httpx

from transport import DeliveryResult, HttpPushTransport


def make_transport(handler):
    return HttpPushTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def test_delivered():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200)

    transport = make_transport(handler)
    result = await transport.send("https://bridge/send/abc", '{"type":"you","url":"https://bridge/send/abc"}')
    await transport.close()

    assert result is DeliveryResult.DELIVERED
    [request] = seen
    assert request.method == "POST"
    assert str(request.url) == "https://bridge/send/abc"
    assert request.headers["content-type"] == "text/plain;charset=UTF-8"
    assert request.content == b'{"type":"you","url":"https://bridge/send/abc"}'


async def test_not_found():
    transport = make_transport(lambda request: httpx.Response(404))

    assert await transport.send("https://bridge/send/gone", "{}") is DeliveryResult.NOT_FOUND


async def test_server_error_is_a_failure():
    transport = make_transport(lambda request: httpx.Response(502))

    assert await transport.send("https://bridge/send/abc", "{}") is DeliveryResult.FAILED


async def test_network_error_is_a_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = make_transport(handler)

    assert await transport.send("https://bridge/send/abc", "{}") is DeliveryResult.FAILED


async def test_unparseable_url_is_a_failure():
    seen = []
    transport = make_transport(lambda request: seen.append(request) or httpx.Response(200))

    assert await transport.send("http://x:notaport/cb", "{}") is DeliveryResult.FAILED
    assert seen == []
