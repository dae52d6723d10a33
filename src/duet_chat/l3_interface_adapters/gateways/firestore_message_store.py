"""Gateway: Firestore message store over the REST API — implements MessageStore port.

Writes go through ``documents:commit`` with a server-side REQUEST_TIME
transform on ``timestamp``, so ordering is assigned by Firestore. The
realtime feed is a polling ``runQuery`` ordered by timestamp ascending;
a full snapshot is delivered on the first poll and whenever the result
changes. Local writes wake every subscription for an immediate re-poll.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from datetime import datetime

import httpx
from pydantic import ValidationError

from duet_chat.l1_entities.errors import StoreError
from duet_chat.l1_entities.message import Message
from duet_chat.l2_use_cases.ports.message_store import SnapshotCallback

log = logging.getLogger('duet.store')

FIRESTORE_API = 'https://firestore.googleapis.com/v1'

_FRACTION_RE = re.compile(r'\.(\d+)')


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp. Firestore sends up to nanosecond precision; keep microseconds."""
    value = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), value, count=1)
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def encode_fields(message: Message) -> dict:
    fields = {
        'role': {'stringValue': message.role},
        'speaker': {'stringValue': message.speaker},
        'content': {'stringValue': message.content},
    }
    if message.image_url:
        fields['imageUrl'] = {'stringValue': message.image_url}
    return fields


def _decode_value(value: dict):
    if 'stringValue' in value:
        return value['stringValue']
    if 'timestampValue' in value:
        return parse_timestamp(value['timestampValue'])
    if 'integerValue' in value:
        return int(value['integerValue'])
    if 'booleanValue' in value:
        return value['booleanValue']
    return None


def decode_document(document: dict) -> Message:
    """Map a Firestore REST document to a Message. Raises ValidationError on foreign shapes."""
    data = {key: _decode_value(val) for key, val in document.get('fields', {}).items()}
    data['id'] = document.get('name', '').rsplit('/', 1)[-1]
    return Message.model_validate(data)


def _signature(messages: list[Message]) -> tuple:
    return tuple((m.id, m.timestamp) for m in messages)


class PollingSubscription:
    """Background poll loop delivering full snapshots while active."""

    def __init__(self, store: FirestoreMessageStore, callback: SnapshotCallback, interval: float) -> None:
        self._store = store
        self._callback = callback
        self._interval = interval
        self._wake = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def active(self) -> bool:
        return not self._task.done()

    def poke(self) -> None:
        self._wake.set()

    def unsubscribe(self) -> None:
        self._store._detach(self)  # noqa: SLF001 -- subscription owns its detach
        if not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        last: tuple | None = None
        while True:
            try:
                messages = await self._store.fetch_all()
            except StoreError as e:
                log.warning('Feed poll failed, retrying in %.1fs: %s', self._interval, e)
            except Exception:
                log.exception('Feed poll raised, retrying in %.1fs', self._interval)
            else:
                signature = _signature(messages)
                if signature != last:
                    last = signature
                    try:
                        self._callback(messages)
                    except Exception:
                        log.exception('Snapshot callback raised')
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
            except TimeoutError:
                pass
            self._wake.clear()


class FirestoreMessageStore:
    """Stores chat messages in one Firestore collection, authenticated by web API key."""

    def __init__(
        self,
        project_id: str,
        api_key: str | None = None,
        collection: str = 'messages',
        database: str = '(default)',
        poll_interval: float = 2.0,
        base_url: str = FIRESTORE_API,
        timeout: float = 20.0,
    ) -> None:
        self._project_id = project_id
        self._api_key = api_key
        self._collection = collection
        self._database = database
        self._poll_interval = poll_interval
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._subscriptions: list[PollingSubscription] = []

    @property
    def documents_path(self) -> str:
        return f'projects/{self._project_id}/databases/{self._database}/documents'

    def _params(self) -> dict[str, str]:
        return {'key': self._api_key} if self._api_key else {}

    async def _post(self, action: str, body: dict) -> httpx.Response:
        url = f'{self._base_url}/{self.documents_path}:{action}'
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, params=self._params(), json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f'Firestore {action} returned {e.response.status_code}: {e.response.text[:300]}') from e
        except httpx.HTTPError as e:
            raise StoreError(f'Firestore {action} failed: {e}') from e
        return resp

    async def add(self, message: Message) -> Message:
        doc_id = uuid.uuid4().hex[:20]
        body = {
            'writes': [
                {
                    'update': {
                        'name': f'{self.documents_path}/{self._collection}/{doc_id}',
                        'fields': encode_fields(message),
                    },
                    'updateTransforms': [
                        {'fieldPath': 'timestamp', 'setToServerValue': 'REQUEST_TIME'},
                    ],
                }
            ]
        }
        resp = await self._post('commit', body)
        data = resp.json()

        timestamp = None
        try:
            raw_ts = data['writeResults'][0]['transformResults'][0]['timestampValue']
        except (KeyError, IndexError, TypeError):
            raw_ts = data.get('commitTime')
        if raw_ts:
            timestamp = parse_timestamp(raw_ts)

        log.debug('firestore: committed %s/%s', self._collection, doc_id)
        for sub in list(self._subscriptions):
            sub.poke()
        return message.model_copy(update={'id': doc_id, 'timestamp': timestamp})

    async def fetch_all(self) -> list[Message]:
        """Run the feed query once: the whole collection, ordered by timestamp ascending."""
        body = {
            'structuredQuery': {
                'from': [{'collectionId': self._collection}],
                'orderBy': [{'field': {'fieldPath': 'timestamp'}, 'direction': 'ASCENDING'}],
            }
        }
        resp = await self._post('runQuery', body)
        try:
            rows = resp.json()
        except ValueError as e:
            raise StoreError(f'Firestore runQuery returned a non-JSON body: {e}') from e
        messages: list[Message] = []
        for row in rows:
            document = row.get('document')
            if document is None:
                continue
            try:
                messages.append(decode_document(document))
            except ValidationError as e:
                log.warning('Skipping malformed document %s: %s', document.get('name', '?'), e)
        return messages

    def subscribe(self, callback: SnapshotCallback) -> PollingSubscription:
        sub = PollingSubscription(self, callback, self._poll_interval)
        self._subscriptions.append(sub)
        return sub

    def _detach(self, sub: PollingSubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
