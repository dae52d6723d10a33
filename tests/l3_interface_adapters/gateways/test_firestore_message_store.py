"""Tests for the Firestore REST message store — mocks httpx here (L3 boundary)."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from duet_chat.l1_entities.errors import StoreError
from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.feed_use_case import read_snapshot_once
from duet_chat.l3_interface_adapters.gateways.firestore_message_store import (
    FirestoreMessageStore,
    decode_document,
    encode_fields,
    parse_timestamp,
)
from tests.conftest import make_message

_CLIENT = 'duet_chat.l3_interface_adapters.gateways.firestore_message_store.httpx.AsyncClient'
_DOCS = 'projects/demo/databases/(default)/documents'


def _response(status: int, payload=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request('POST', f'https://firestore.googleapis.com/v1/{_DOCS}:commit')
    if payload is not None:
        return httpx.Response(status, json=payload, request=request)
    return httpx.Response(status, text=text or '', request=request)


def _mock_client(mock_client_cls, response=None, side_effect=None) -> AsyncMock:
    client = AsyncMock()
    if side_effect is not None:
        client.post.side_effect = side_effect
    else:
        client.post.return_value = response
    mock_client_cls.return_value.__aenter__.return_value = client
    return client


def _document(doc_id: str, content: str, ts: str, role: str = 'user', speaker: str = '阿庭') -> dict:
    return {
        'name': f'{_DOCS}/messages/{doc_id}',
        'fields': {
            'role': {'stringValue': role},
            'speaker': {'stringValue': speaker},
            'content': {'stringValue': content},
            'timestamp': {'timestampValue': ts},
        },
    }


class TestCodec:
    def test_parse_timestamp_truncates_nanoseconds(self):
        assert parse_timestamp('2025-03-01T12:00:00.123456789Z') == datetime(2025, 3, 1, 12, 0, 0, 123456, tzinfo=UTC)

    def test_parse_timestamp_short_fraction(self):
        assert parse_timestamp('2025-03-01T12:00:00.5Z') == datetime(2025, 3, 1, 12, 0, 0, 500000, tzinfo=UTC)

    def test_parse_timestamp_without_fraction(self):
        assert parse_timestamp('2025-03-01T12:00:00Z') == datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)

    def test_encode_text_message(self):
        fields = encode_fields(Message.user('阿庭', 'Hello'))
        assert fields == {
            'role': {'stringValue': 'user'},
            'speaker': {'stringValue': '阿庭'},
            'content': {'stringValue': 'Hello'},
        }

    def test_encode_image_message(self):
        fields = encode_fields(Message.user('阿庭', '', image_url='https://x/y.png'))
        assert fields['imageUrl'] == {'stringValue': 'https://x/y.png'}

    def test_decode_document(self):
        msg = decode_document(_document('abc123', 'Hello', '2025-03-01T12:00:00Z'))
        assert msg.id == 'abc123'
        assert msg.content == 'Hello'
        assert msg.timestamp == datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)

    def test_decode_pending_write_has_no_timestamp(self):
        doc = _document('abc', 'x', '2025-03-01T12:00:00Z')
        del doc['fields']['timestamp']
        assert decode_document(doc).timestamp is None


class TestAdd:
    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_commit_with_server_timestamp(self, mock_client_cls):
        client = _mock_client(
            mock_client_cls,
            _response(
                200,
                {
                    'writeResults': [
                        {
                            'updateTime': '2025-03-01T12:00:00.100000Z',
                            'transformResults': [{'timestampValue': '2025-03-01T12:00:00.100000Z'}],
                        }
                    ],
                    'commitTime': '2025-03-01T12:00:00.100000Z',
                },
            ),
        )
        store = FirestoreMessageStore(project_id='demo', api_key='k')

        stored = await store.add(Message.user('阿庭', 'Hello'))

        assert len(stored.id) == 20
        assert stored.content == 'Hello'
        assert stored.timestamp == datetime(2025, 3, 1, 12, 0, 0, 100000, tzinfo=UTC)

        args, kwargs = client.post.call_args
        assert args[0].endswith(f'{_DOCS}:commit')
        assert kwargs['params'] == {'key': 'k'}
        write = kwargs['json']['writes'][0]
        assert write['update']['name'] == f'{_DOCS}/messages/{stored.id}'
        assert write['updateTransforms'] == [{'fieldPath': 'timestamp', 'setToServerValue': 'REQUEST_TIME'}]

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_falls_back_to_commit_time(self, mock_client_cls):
        _mock_client(mock_client_cls, _response(200, {'commitTime': '2025-03-01T12:00:01Z'}))
        store = FirestoreMessageStore(project_id='demo')

        stored = await store.add(Message.assistant('hi'))

        assert stored.timestamp == datetime(2025, 3, 1, 12, 0, 1, tzinfo=UTC)

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_no_key_param_without_api_key(self, mock_client_cls):
        client = _mock_client(mock_client_cls, _response(200, {}))
        await FirestoreMessageStore(project_id='demo').add(Message.user('阿庭', 'x'))
        assert client.post.call_args.kwargs['params'] == {}

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_permission_denied_raises_store_error(self, mock_client_cls):
        _mock_client(mock_client_cls, _response(403, text='PERMISSION_DENIED'))
        store = FirestoreMessageStore(project_id='demo')
        with pytest.raises(StoreError, match='403'):
            await store.add(Message.user('阿庭', 'Hello'))

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_network_error_raises_store_error(self, mock_client_cls):
        _mock_client(mock_client_cls, side_effect=httpx.ConnectError('unreachable'))
        store = FirestoreMessageStore(project_id='demo')
        with pytest.raises(StoreError, match='unreachable'):
            await store.add(Message.user('阿庭', 'Hello'))


class TestFetchAll:
    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_runs_ordered_query(self, mock_client_cls):
        client = _mock_client(
            mock_client_cls,
            _response(
                200,
                [
                    {'document': _document('a', 'first', '2025-03-01T12:00:00Z')},
                    {'document': _document('b', 'second', '2025-03-01T12:00:01Z', role='assistant', speaker='AI')},
                    {'readTime': '2025-03-01T12:00:02Z'},
                ],
            ),
        )
        store = FirestoreMessageStore(project_id='demo', collection='messages')

        messages = await store.fetch_all()

        assert [m.content for m in messages] == ['first', 'second']
        assert messages[1].is_assistant
        args, kwargs = client.post.call_args
        assert args[0].endswith(f'{_DOCS}:runQuery')
        query = kwargs['json']['structuredQuery']
        assert query['from'] == [{'collectionId': 'messages'}]
        assert query['orderBy'] == [{'field': {'fieldPath': 'timestamp'}, 'direction': 'ASCENDING'}]

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_skips_malformed_documents(self, mock_client_cls):
        broken = {'name': f'{_DOCS}/messages/zzz', 'fields': {'content': {'stringValue': 'no role'}}}
        _mock_client(
            mock_client_cls,
            _response(200, [{'document': broken}, {'document': _document('a', 'ok', '2025-03-01T12:00:00Z')}]),
        )
        messages = await FirestoreMessageStore(project_id='demo').fetch_all()
        assert [m.id for m in messages] == ['a']

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_non_json_body_raises_store_error(self, mock_client_cls):
        _mock_client(mock_client_cls, _response(200, text='<html>proxy login</html>'))
        with pytest.raises(StoreError, match='non-JSON'):
            await FirestoreMessageStore(project_id='demo').fetch_all()


class TestSubscription:
    @pytest.mark.asyncio
    async def test_first_poll_delivers_snapshot(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        snapshot = [make_message(0), make_message(1)]
        delivered = asyncio.Event()
        received: list[list[Message]] = []

        def on_snapshot(messages):
            received.append(messages)
            delivered.set()

        with patch.object(store, 'fetch_all', AsyncMock(return_value=snapshot)):
            sub = store.subscribe(on_snapshot)
            await asyncio.wait_for(delivered.wait(), timeout=1)
            sub.unsubscribe()

        assert received == [snapshot]

    @pytest.mark.asyncio
    async def test_poke_redelivers_changed_snapshot(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        snapshots = [[make_message(0)], [make_message(0), make_message(1)]]
        received: list[list[Message]] = []
        arrived = asyncio.Queue()

        def on_snapshot(messages):
            received.append(messages)
            arrived.put_nowait(None)

        with patch.object(store, 'fetch_all', AsyncMock(side_effect=snapshots)):
            sub = store.subscribe(on_snapshot)
            await asyncio.wait_for(arrived.get(), timeout=1)
            sub.poke()
            await asyncio.wait_for(arrived.get(), timeout=1)
            sub.unsubscribe()

        assert [len(s) for s in received] == [1, 2]

    @pytest.mark.asyncio
    async def test_unchanged_snapshot_not_redelivered(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        polled = asyncio.Queue()
        received = []

        async def fetch_all():
            polled.put_nowait(None)
            return [make_message(0)]

        with patch.object(store, 'fetch_all', fetch_all):
            sub = store.subscribe(received.append)
            await asyncio.wait_for(polled.get(), timeout=1)
            sub.poke()
            await asyncio.wait_for(polled.get(), timeout=1)
            await asyncio.sleep(0)
            sub.unsubscribe()

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_poll_error_keeps_subscription_alive(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        delivered = asyncio.Event()

        with patch.object(store, 'fetch_all', AsyncMock(side_effect=[StoreError('503'), [make_message(0)]])):
            sub = store.subscribe(lambda _messages: delivered.set())
            await asyncio.sleep(0)
            sub.poke()
            await asyncio.wait_for(delivered.wait(), timeout=1)
            sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_unexpected_poll_error_keeps_subscription_alive(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=0.05)
        delivered = asyncio.Event()

        with patch.object(store, 'fetch_all', AsyncMock(side_effect=[ValueError('bad timestamp'), []])):
            sub = store.subscribe(lambda _messages: delivered.set())
            await asyncio.wait_for(delivered.wait(), timeout=1)
            assert sub.active
            sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_polling(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        with patch.object(store, 'fetch_all', AsyncMock(return_value=[])):
            sub = store.subscribe(lambda _messages: None)
            sub.unsubscribe()
            sub.unsubscribe()
            await asyncio.sleep(0.01)
        assert not sub.active

    @pytest.mark.asyncio
    async def test_one_shot_read_through_subscription(self):
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        with patch.object(store, 'fetch_all', AsyncMock(return_value=[make_message(3)])):
            messages = await read_snapshot_once(store)
            await asyncio.sleep(0.01)
        assert [m.id for m in messages] == ['m0003']

    @pytest.mark.asyncio
    @patch(_CLIENT)
    async def test_add_wakes_subscriptions(self, mock_client_cls):
        _mock_client(mock_client_cls, _response(200, {'commitTime': '2025-03-01T12:00:01Z'}))
        store = FirestoreMessageStore(project_id='demo', poll_interval=60)
        polls = asyncio.Queue()

        async def fetch_all():
            polls.put_nowait(None)
            return []

        with patch.object(store, 'fetch_all', fetch_all):
            sub = store.subscribe(lambda _messages: None)
            await asyncio.wait_for(polls.get(), timeout=1)
            await store.add(Message.user('阿庭', 'Hello'))
            await asyncio.wait_for(polls.get(), timeout=1)
            sub.unsubscribe()
