import io
import socket
import threading

import dns.message
import pytest
from rich.console import Console


def answer(data):
    query = dns.message.from_wire(data)
    return [dns.message.make_response(query).to_wire()]


def stale_then_answer(data):
    query = dns.message.from_wire(data)
    stale = dns.message.make_response(query)
    stale.id = (query.id + 1) % 65536
    return [stale.to_wire(), dns.message.make_response(query).to_wire()]


def garbage(data):
    return [b'\x00\x01garbage']


def silence(data):
    return []


class MockResolver:
    """UDP server on localhost answering with whatever ``responder`` returns."""

    def __init__(self, responder=answer, delay=0.0):
        self.responder = responder
        self.delay = delay
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.settimeout(0.05)
        self.address = '127.0.0.1:%d' % self.sock.getsockname()[1]
        self.received = 0
        self.qnames = set()
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stopped.is_set():
            try:
                data, peer = self.sock.recvfrom(65535)
            except socket.timeout:
                continue
            except OSError:
                return
            self.received += 1
            self.qnames.add(dns.message.from_wire(data).question[0].name.to_text())
            replies = self.responder(data)
            if self.delay:
                threading.Timer(self.delay, self._reply, (replies, peer)).start()
            else:
                self._reply(replies, peer)

    def _reply(self, replies, peer):
        for reply in replies:
            try:
                self.sock.sendto(reply, peer)
            except OSError:
                return

    def close(self):
        self._stopped.set()
        self._thread.join(1)
        self.sock.close()


@pytest.fixture
def make_resolver():
    resolvers = []

    def factory(responder=answer, delay=0.0):
        resolver = MockResolver(responder, delay)
        resolvers.append(resolver)
        return resolver

    yield factory
    for resolver in resolvers:
        resolver.close()


@pytest.fixture
def replying_resolver(make_resolver):
    return make_resolver(answer)


@pytest.fixture
def silent_resolver(make_resolver):
    return make_resolver(silence)


@pytest.fixture
def console_output():
    buffer = io.StringIO()
    console = Console(file=buffer, highlight=False, color_system=None, width=200)
    return console, buffer


@pytest.fixture
def drain():
    def _drain(queue):
        items = []
        while not queue.empty():
            items.append(queue.get_nowait())
        return items
    return _drain


@pytest.fixture
def responders():
    return {
        'answer': answer,
        'stale_then_answer': stale_then_answer,
        'garbage': garbage,
        'silence': silence,
    }
