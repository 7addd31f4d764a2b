"""
Unit tests for the Bluesky API client
"""

from unittest.mock import Mock, call, patch

import pytest
import requests

from followguard.services.bsky_service.bsky_api import BlueskyAPI, BlueskyAPIError, chunk
from followguard.utils.config import AppConfig


def make_response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def api(session):
    config = AppConfig(api_backoff_seconds=1.0, follows_page_delay=0, log_level='WARNING')
    return BlueskyAPI(config, session=session)


def block_record(subject):
    return {'uri': 'at://x/app.bsky.graph.block/1', 'value': {'$type': 'app.bsky.graph.block', 'subject': subject}}


class TestChunk:
    def test_chunks(self):
        assert chunk([1, 2, 3, 4, 5, 6, 7], 3) == [[1, 2, 3], [4, 5, 6], [7]]
        assert chunk([], 5) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk([1], 0)


class TestRetry:
    """Retry and backoff behaviour"""

    @patch('followguard.services.bsky_service.bsky_api.time.sleep')
    def test_retries_rate_limited_requests(self, mock_sleep, api, session):
        session.get.side_effect = [
            make_response(429), make_response(429), make_response(429),
            make_response(200, {'did': 'did:plc:a', 'handle': 'a.bsky.social'}),
        ]

        profile = api.get_profile('a.bsky.social')

        assert profile.did == 'did:plc:a'
        assert session.get.call_count == 4
        assert mock_sleep.call_args_list == [call(1.0), call(2.0), call(4.0)]

    @patch('followguard.services.bsky_service.bsky_api.time.sleep')
    def test_gives_up_after_max_retries(self, mock_sleep, api, session):
        session.get.return_value = make_response(429)

        with pytest.raises(BlueskyAPIError) as exc_info:
            api.get_follows('did:plc:owner')

        assert exc_info.value.status_code == 429
        assert session.get.call_count == 4
        assert mock_sleep.call_count == 3

    @patch('followguard.services.bsky_service.bsky_api.time.sleep')
    def test_retries_transport_errors(self, mock_sleep, api, session):
        session.get.side_effect = [
            requests.exceptions.ConnectionError('connection reset'),
            make_response(200, {'follows': []}),
        ]

        follows, cursor = api.get_follows('did:plc:owner')

        assert follows == []
        assert cursor is None
        mock_sleep.assert_called_once_with(1.0)

    def test_other_errors_are_not_retried(self, api, session):
        session.get.return_value = make_response(500)

        with pytest.raises(BlueskyAPIError) as exc_info:
            api.get_follows('did:plc:owner')

        assert exc_info.value.status_code == 500
        assert session.get.call_count == 1


class TestFollows:
    def test_get_all_follows_paginates(self, api, session):
        session.get.side_effect = [
            make_response(200, {
                'follows': [{'did': 'did:plc:a', 'handle': 'a.bsky.social', 'displayName': 'A'}],
                'cursor': 'page2'
            }),
            make_response(200, {
                'follows': [{'did': 'did:plc:b', 'handle': 'b.bsky.social'}, {'handle': 'no-did'}],
            }),
        ]

        follows = api.get_all_follows('did:plc:owner')

        assert [user.did for user in follows] == ['did:plc:a', 'did:plc:b']
        assert follows[0].display_name == 'A'
        second_params = session.get.call_args_list[1].kwargs['params']
        assert second_params == {'actor': 'did:plc:owner', 'limit': 100, 'cursor': 'page2'}

    @patch('followguard.services.bsky_service.bsky_api.time.sleep')
    def test_page_delay(self, mock_sleep, api, session):
        session.get.side_effect = [
            make_response(200, {'follows': [], 'cursor': 'next'}),
            make_response(200, {'follows': []}),
        ]

        api.get_all_follows('did:plc:owner', page_delay=0.1)

        mock_sleep.assert_called_once_with(0.1)

    def test_on_page_reports_running_total(self, api, session):
        session.get.side_effect = [
            make_response(200, {'follows': [{'did': 'did:plc:a', 'handle': 'a'}], 'cursor': 'next'}),
            make_response(200, {'follows': [{'did': 'did:plc:b', 'handle': 'b'}, {'did': 'did:plc:c', 'handle': 'c'}]}),
        ]
        on_page = Mock()

        api.get_all_follows('did:plc:owner', on_page=on_page)

        assert on_page.call_args_list == [call(1), call(3)]

    def test_get_profile_failure_returns_none(self, api, session):
        session.get.return_value = make_response(400)
        assert api.get_profile('nobody.bsky.social') is None


class TestBlocks:
    def test_resolve_pds(self, api, session):
        session.get.return_value = make_response(200, {
            'id': 'did:plc:a',
            'service': [
                {'id': '#atproto_labeler', 'serviceEndpoint': 'https://labeler.example.com'},
                {'id': '#atproto_pds', 'type': 'AtprotoPersonalDataServer', 'serviceEndpoint': 'https://pds.example.com'},
            ]
        })

        assert api.resolve_pds('did:plc:a') == 'https://pds.example.com'
        assert session.get.call_args[0][0] == 'https://plc.directory/did:plc:a'

    def test_resolve_pds_only_for_plc(self, api, session):
        assert api.resolve_pds('did:web:example.com') is None
        session.get.assert_not_called()

    def test_get_user_blocks_paginates(self, api, session):
        session.get.side_effect = [
            make_response(200, {'records': [block_record('did:plc:x'), block_record('did:plc:y')], 'cursor': 'c1'}),
            make_response(200, {'records': [block_record('did:plc:z'), {'value': {}}]}),
        ]

        blocks = api.get_user_blocks('did:plc:a', pds_url='https://pds.example.com/')

        assert blocks == ['did:plc:x', 'did:plc:y', 'did:plc:z']
        first_call = session.get.call_args_list[0]
        assert first_call[0][0] == 'https://pds.example.com/xrpc/com.atproto.repo.listRecords'
        assert first_call.kwargs['params'] == {'repo': 'did:plc:a', 'collection': 'app.bsky.graph.block', 'limit': 100}
        assert session.get.call_args_list[1].kwargs['params']['cursor'] == 'c1'

    def test_get_user_blocks_resolves_pds(self, api, session):
        session.get.side_effect = [
            make_response(200, {'service': [{'id': '#atproto_pds', 'serviceEndpoint': 'https://pds.example.com'}]}),
            make_response(200, {'records': [block_record('did:plc:x')]}),
        ]

        assert api.get_user_blocks('did:plc:a') == ['did:plc:x']
        assert session.get.call_args_list[1][0][0].startswith('https://pds.example.com/')

    def test_get_user_blocks_falls_back_to_default_pds(self, api, session):
        session.get.return_value = make_response(200, {'records': []})

        assert api.get_user_blocks('did:web:example.com') == []
        assert session.get.call_args[0][0] == 'https://bsky.social/xrpc/com.atproto.repo.listRecords'

    def test_missing_repo_returns_collected_blocks(self, api, session):
        session.get.return_value = make_response(404)
        assert api.get_user_blocks('did:plc:a', pds_url='https://pds.example.com') == []

    def test_server_error_raises(self, api, session):
        session.get.return_value = make_response(502)
        with pytest.raises(BlueskyAPIError):
            api.get_user_blocks('did:plc:a', pds_url='https://pds.example.com')
