import base64

import httpx
import pytest
import respx

from fitmirror.services.tryon import ANGLE_ERROR, ProductImageError, TryOnService

from conftest import FakeProvider, data_uri


OUT_URL = "https://replicate.delivery/out.png"
GARMENT = data_uri(b"garment-bytes", "image/jpeg")


@pytest.mark.asyncio
@respx.mock
async def test_remote_output_is_inlined(photos_by_angle):
    respx.get(OUT_URL).mock(return_value=httpx.Response(200, content=b"generated", headers={"content-type": "image/png"}))
    provider = FakeProvider()

    results = await TryOnService(provider).generate(photos_by_angle, product_image=GARMENT)

    assert [r.angle for r in results] == ["front", "back", "left", "right"]
    expected = "data:image/png;base64," + base64.b64encode(b"generated").decode()
    assert all(r.image_url == expected and r.error is None and r.fallback is None for r in results)
    assert [human for human, _ in provider.calls] == [photos_by_angle[a] for a in ("front", "back", "left", "right")]
    assert all(garment == GARMENT for _, garment in provider.calls)


@pytest.mark.asyncio
async def test_failing_angle_is_isolated(photos_by_angle):
    provider = FakeProvider(
        outputs={photos_by_angle["back"]: RuntimeError("model exploded")},
        default=[b"jpeg-", b"bytes"],
    )

    results = await TryOnService(provider).generate(photos_by_angle, product_image=GARMENT)

    assert len(results) == 4
    by_angle = {r.angle: r for r in results}
    assert by_angle["back"].error == ANGLE_ERROR
    assert by_angle["back"].image_url == photos_by_angle["back"]
    for angle in ("front", "left", "right"):
        assert by_angle[angle].error is None
        assert by_angle[angle].image_url == "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode()


@pytest.mark.asyncio
@respx.mock
async def test_generated_fetch_failure_falls_back_with_flag(photos_by_angle):
    respx.get(OUT_URL).mock(return_value=httpx.Response(500))

    results = await TryOnService(FakeProvider()).generate({"front": photos_by_angle["front"]}, product_image=GARMENT)

    assert len(results) == 1
    assert results[0].image_url == photos_by_angle["front"]
    assert results[0].fallback is True
    assert results[0].error is None


@pytest.mark.asyncio
async def test_empty_output_falls_back(photos_by_angle):
    results = await TryOnService(FakeProvider(default=None)).generate({"left": photos_by_angle["left"]}, product_image=GARMENT)
    assert results[0].image_url == photos_by_angle["left"]
    assert results[0].fallback is True


@pytest.mark.asyncio
async def test_unknown_angles_are_skipped():
    provider = FakeProvider()
    results = await TryOnService(provider).generate({"top": data_uri(b"x")}, product_image=GARMENT)
    assert results == []
    assert provider.calls == []


@pytest.mark.asyncio
@respx.mock
async def test_product_url_fetched_with_browser_agent(photos_by_angle):
    route = respx.get("https://shop.example.com/shirt.webp").mock(
        return_value=httpx.Response(200, content=b"shirt", headers={"content-type": "image/webp; charset=binary"})
    )
    provider = FakeProvider(default="data:image/png;base64,AAAA")

    await TryOnService(provider).generate({"front": photos_by_angle["front"]}, product_url="https://shop.example.com/shirt.webp")

    assert route.called
    assert route.calls.last.request.headers["user-agent"].startswith("Mozilla/5.0")
    assert provider.calls[0][1] == "data:image/webp;base64," + base64.b64encode(b"shirt").decode()


@pytest.mark.asyncio
@respx.mock
async def test_product_url_without_content_type_defaults_to_jpeg():
    respx.get("https://shop.example.com/img").mock(return_value=httpx.Response(200, content=b"img"))
    garment = await TryOnService(FakeProvider()).fetch_product_image("https://shop.example.com/img")
    assert garment == "data:image/jpeg;base64," + base64.b64encode(b"img").decode()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,fragment",
    [(403, "blocking access"), (404, "not found"), (500, "direct image URL")],
)
async def test_product_url_errors_are_distinguished(status, fragment):
    with respx.mock:
        respx.get("https://shop.example.com/p").mock(return_value=httpx.Response(status))
        with pytest.raises(ProductImageError) as exc:
            await TryOnService(FakeProvider()).fetch_product_image("https://shop.example.com/p")
    message = str(exc.value)
    assert message.startswith(f"Failed to fetch image from URL ({status}")
    assert fragment in message


@pytest.mark.asyncio
@respx.mock
async def test_product_url_transport_error():
    respx.get("https://shop.example.com/down").mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(ProductImageError, match="Failed to fetch product image from URL"):
        await TryOnService(FakeProvider()).fetch_product_image("https://shop.example.com/down")


@pytest.mark.asyncio
async def test_product_url_malformed():
    with pytest.raises(ProductImageError, match="Failed to fetch product image from URL"):
        await TryOnService(FakeProvider()).fetch_product_image("https://[::1/x.jpg")


@pytest.mark.asyncio
async def test_malformed_generated_url_falls_back(photos_by_angle):
    provider = FakeProvider(default="http://exa mple.com/\x00")

    results = await TryOnService(provider).generate({"front": photos_by_angle["front"]}, product_image=GARMENT)

    assert results[0].image_url == photos_by_angle["front"]
    assert results[0].fallback is True
    assert results[0].error is None
