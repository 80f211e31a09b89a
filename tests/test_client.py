"""Tests for hurl.client: request building and execution."""

import json

import httpx
import pytest

from hurl.client import Client, Response, build_request, choose_method, normalize_url
from hurl.config import Config
from hurl.errors import (
    ClientOther,
    ClientSerialization,
    ClientTimeout,
    ClientWithStatus,
    IoError,
    UrlParseError,
)
from hurl.parameters import Data, FormFile, Header, Query
from hurl.session import Session


class TestQueryString:
    """Query parameters are appended in encounter order."""

    def test_appends_in_order(self):
        request = build_request('GET', 'http://example.test/items', [Query('limit', '10'), Query('page', '2')])
        assert request.url.query == b'limit=10&page=2'

    def test_duplicates_are_repeated(self):
        request = build_request('GET', 'http://example.test/items', [Query('a', '1'), Query('a', '2')])
        assert request.url.query == b'a=1&a=2'

    def test_keeps_existing_query(self):
        request = build_request('GET', 'http://example.test/items?x=1', [Query('x', '2')])
        assert request.url.query == b'x=1&x=2'

    def test_values_are_encoded(self):
        request = build_request('GET', 'http://example.test/', [Query('q', 'a b&c')])
        assert request.url.query == b'q=a+b%26c'


class TestJsonBody:
    """Data parameters without form mode become one JSON object."""

    def test_keys_match_parameters(self):
        request = build_request('POST', 'http://example.test/', [Data('a', '1'), Data('b', '2')])
        assert json.loads(request.content) == {'a': '1', 'b': '2'}
        assert request.headers['Content-Type'] == 'application/json'

    def test_last_value_wins_and_first_position_kept(self):
        request = build_request('POST', 'http://example.test/', [Data('a', '1'), Data('b', '2'), Data('a', '3')])
        body = json.loads(request.content)
        assert body == {'a': '3', 'b': '2'}
        assert list(body) == ['a', 'b']

    def test_json_typed_values_keep_type(self):
        request = build_request('POST', 'http://example.test/', [Data('n', 5, True), Data('ok', True, True)])
        assert json.loads(request.content) == {'n': 5, 'ok': True}

    def test_json_typed_forces_json_in_form_mode(self):
        request = build_request('POST', 'http://example.test/', [Data('n', 5, True), Data('s', 'x')], form=True)
        assert json.loads(request.content) == {'n': 5, 's': 'x'}

    def test_explicit_content_type_is_kept(self):
        request = build_request('POST', 'http://example.test/',
                                [Header('Content-Type', 'application/vnd.api+json'), Data('a', '1')])
        assert request.headers['Content-Type'] == 'application/vnd.api+json'

    def test_no_body_without_data(self):
        request = build_request('GET', 'http://example.test/', [Query('a', '1')])
        assert request.content == b''
        assert 'Content-Type' not in request.headers


class TestMultipartBody:
    """Form mode sends data and files as multipart parts."""

    def test_form_fields(self):
        request = build_request('POST', 'http://example.test/', [Data('a', '1'), Data('b', '2')], form=True)
        body = request.read()
        assert request.headers['Content-Type'].startswith('multipart/form-data')
        assert b'name="a"' in body
        assert body.index(b'name="a"') < body.index(b'name="b"')

    def test_duplicate_field_last_value_wins(self):
        request = build_request('POST', 'http://example.test/', [Data('a', 'first'), Data('a', 'second')], form=True)
        body = request.read()
        assert body.count(b'name="a"') == 1
        assert b'second' in body
        assert b'first' not in body

    def test_form_file_attached(self, tmp_path):
        picture = tmp_path / 'pic.png'
        picture.write_bytes(b'\x89PNGDATA')
        request = build_request('POST', 'http://example.test/',
                                [Data('name', 'alice'), FormFile('avatar', str(picture))], form=True)
        body = request.read()
        assert b'name="avatar"; filename="pic.png"' in body
        assert b'Content-Type: image/png' in body
        assert b'\x89PNGDATA' in body

    def test_unreadable_form_file(self, tmp_path):
        with pytest.raises(IoError) as exc_info:
            build_request('POST', 'http://example.test/', [FormFile('avatar', str(tmp_path / 'missing.png'))], form=True)
        assert exc_info.value.kind == 'NotFound'


class TestHeaders:
    """Session defaults come first, then credentials, then header parameters."""

    def test_header_parameter_overrides_session_default(self):
        session = Session('dev', 'example.test', headers={'Accept': 'text/plain', 'X-Env': 'prod'})
        request = build_request('GET', 'http://example.test/', [Header('accept', 'application/json')], session=session)
        assert request.headers['Accept'] == 'application/json'
        assert request.headers['X-Env'] == 'prod'

    def test_session_cookies_sorted(self):
        session = Session('dev', 'example.test', cookies={'b': '2', 'a': '1'})
        request = build_request('GET', 'http://example.test/', [], session=session)
        assert request.headers['Cookie'] == 'a=1; b=2'

    def test_basic_auth(self):
        request = build_request('GET', 'http://example.test/', [], auth='user:pass')
        assert request.headers['Authorization'] == 'Basic dXNlcjpwYXNz'

    def test_basic_auth_without_password(self):
        request = build_request('GET', 'http://example.test/', [], auth='user')
        assert request.headers['Authorization'] == 'Basic dXNlcjo='

    def test_cli_token_overrides_session_token(self):
        session = Session('dev', 'example.test', token='old')
        request = build_request('GET', 'http://example.test/', [], session=session, token='new')
        assert request.headers['Authorization'] == 'Bearer new'

    def test_session_token_used(self):
        session = Session('dev', 'example.test', token='abc')
        request = build_request('GET', 'http://example.test/', [], session=session)
        assert request.headers['Authorization'] == 'Bearer abc'


class TestUrls:
    """URL normalization and validation."""

    @pytest.mark.parametrize(
        'url, expected',
        [
            (':8000/api', 'http://localhost:8000/api'),
            ('example.test/items', 'http://example.test/items'),
            ('https://example.test', 'https://example.test'),
        ],
    )
    def test_normalize_url(self, url, expected):
        assert normalize_url(url) == expected

    def test_invalid_port(self):
        with pytest.raises(UrlParseError):
            build_request('GET', 'http://example.test:notaport/', [])

    def test_method_is_upper_cased(self):
        assert build_request('patch', 'http://example.test/', []).method == 'PATCH'


class TestChooseMethod:
    """POST when there is a body and no explicit method."""

    def test_explicit_method_wins(self):
        assert choose_method('put', [Data('a', '1')]) == 'PUT'

    def test_data_defaults_to_post(self):
        assert choose_method(None, [Query('a', '1'), Data('b', '2')]) == 'POST'

    def test_form_file_defaults_to_post(self):
        assert choose_method(None, [FormFile('f', 'x')]) == 'POST'

    def test_no_data_defaults_to_get(self):
        assert choose_method(None, [Query('a', '1'), Header('X', 'y')]) == 'GET'


class TestExecute:
    """Client.execute buffers the response or classifies the failure."""

    @pytest.mark.asyncio
    async def test_returns_buffered_response(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(
            200,
            content=b'{"ok":true}',
            headers=[('Content-Type', 'application/json'), ('Set-Cookie', 'sid=abc; Path=/')],
        ))
        client = Client(transport=transport)
        response = await client.execute(build_request('GET', 'http://example.test/items', []))

        assert isinstance(response, Response)
        assert response.status_code == 200
        assert response.reason == 'OK'
        assert response.http_version == 'HTTP/1.1'
        assert response.content == b'{"ok":true}'
        assert response.header('content-type') == 'application/json'
        assert response.content_length == 11
        assert response.cookies == {'sid': 'abc'}
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_error_status_is_a_normal_response(self, make_transport):
        client = Client(transport=make_transport(lambda request: httpx.Response(404, text='missing')))
        response = await client.execute(build_request('GET', 'http://example.test/', []))
        assert response.status_code == 404
        assert response.text == 'missing'

    @pytest.mark.asyncio
    async def test_raise_for_status(self, make_transport):
        config = Config(data={'client': {'raise_for_status': True}})
        client = Client(config, transport=make_transport(lambda request: httpx.Response(503)))
        with pytest.raises(ClientWithStatus) as exc_info:
            await client.execute(build_request('GET', 'http://example.test/', []))
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_timeout(self, make_transport):
        def handler(request):
            raise httpx.ReadTimeout('timed out', request=request)

        client = Client(transport=make_transport(handler))
        with pytest.raises(ClientTimeout):
            await client.execute(build_request('GET', 'http://example.test/', []))

    @pytest.mark.asyncio
    async def test_decoding_failure(self, make_transport):
        def handler(request):
            raise httpx.DecodingError('bad gzip', request=request)

        client = Client(transport=make_transport(handler))
        with pytest.raises(ClientSerialization):
            await client.execute(build_request('GET', 'http://example.test/', []))

    @pytest.mark.asyncio
    async def test_connect_failure(self, make_transport):
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        client = Client(transport=make_transport(handler))
        with pytest.raises(ClientOther):
            await client.execute(build_request('GET', 'http://example.test/', []))

    def test_config_values(self):
        config = Config(data={'client': {'timeout': 2.5, 'follow_redirects': False, 'max_redirects': 3}})
        client = Client(config)
        assert client.timeout == 2.5
        assert client.follow_redirects is False
        assert client.max_redirects == 3

    def test_explicit_timeout_wins(self):
        assert Client(Config(data={'client': {'timeout': 2.5}}), timeout=9).timeout == 9


class TestResponseModel:
    def test_empty_body_text(self):
        assert Response(200, 'OK', 'HTTP/1.1').text == ''

    def test_invalid_utf8_is_replaced(self):
        assert Response(200, 'OK', 'HTTP/1.1', content=b'ok\xff').text == 'ok�'

    def test_bad_content_length(self):
        response = Response(200, 'OK', 'HTTP/1.1', headers=[('Content-Length', 'abc')])
        assert response.content_length is None
