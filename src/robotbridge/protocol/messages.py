"""
The messages exchanged with the server, and the addresses they are sent to.

A push request is a JSON object carrying the command, the session token and the device telemetry.
The server answers with a JSON object whose 'cmd' tells the connector what to do next.
"""
import json
import threading
from collections import namedtuple

from robotbridge.protocol.errors import MalformedResponseError
from robotbridge.support.mixins import CommonEqualityMixin, StringerMixin

KEY_CMD = 'cmd'
KEY_TOKEN = 'token'
KEY_FILENAME = 'filename'
KEY_REASON = 'reason'

# request commands
CMD_REGISTER = 'REGISTER'
CMD_PUSH = 'PUSH'

# response commands
CMD_REPEAT = 'REPEAT'
CMD_DOWNLOAD = 'DOWNLOAD'
CMD_UPDATE = 'UPDATE'
CMD_ABORT = 'ABORT'
CMD_DISCONNECT = 'DISCONNECT'
CMD_REGISTER_ERROR = 'REGISTER_ERROR'

PUSH_PATH = '/rest/pushcmd'
DOWNLOAD_PATH = '/rest/download'
UPDATE_PATH = '/rest/update'


EndpointUrls = namedtuple('EndpointUrls', ['address', 'push', 'download', 'update'])


def endpoint_urls(address, scheme='https'):
    """
    Derives the three server URLs from a base address.
    >>> endpoint_urls('localhost:1999').push
    'https://localhost:1999/rest/pushcmd'
    >>> endpoint_urls('10.0.0.2:1337', 'http').update
    'http://10.0.0.2:1337/rest/update'
    """
    address = address.strip().rstrip('/')
    if not address:
        raise ValueError("server address must not be empty")
    base = scheme + '://' + address
    return EndpointUrls(address, base + PUSH_PATH, base + DOWNLOAD_PATH, base + UPDATE_PATH)


class ServerEndpoint:
    """
    The push, download and update addresses of the server.

    The address can be replaced while calls are in progress. The three URLs are swapped
    together, and a call that captured a snapshot before the change keeps using it.
    """
    def __init__(self, address, scheme='https'):
        self.scheme = scheme
        self._lock = threading.Lock()
        self._urls = None
        self.update(address)

    def update(self, address):
        """
        :param address: the server as host:port, for example localhost:1999 or 192.168.178.10:1337
        """
        urls = endpoint_urls(address, self.scheme)
        with self._lock:
            self._urls = urls

    def snapshot(self) -> EndpointUrls:
        with self._lock:
            return self._urls

    @property
    def address(self):
        return self.snapshot().address

    def __repr__(self):
        return "ServerEndpoint(%r)" % self.snapshot().address


class PushRequest(CommonEqualityMixin, StringerMixin):
    """
    A request to register a device or poll for the next command. Requests are built fresh
    for every call from the current token and the device telemetry.
    """
    def __init__(self, cmd, token='', fields=None):
        self.cmd = cmd
        self.token = token or ''
        self.fields = {k: v for k, v in (fields or {}).items() if k not in (KEY_CMD, KEY_TOKEN)}

    def to_dict(self):
        content = dict(self.fields)
        content[KEY_TOKEN] = self.token
        content[KEY_CMD] = self.cmd
        return content

    def to_json(self):
        return json.dumps(self.to_dict())


class PushResponse(CommonEqualityMixin, StringerMixin):
    """
    The server's answer to a push request.
    :param cmd: the command tag, always upper case
    :param token: the session token, given in answer to a registration
    :param payload: any other fields of the response
    """
    def __init__(self, cmd, token=None, payload=None):
        self.cmd = cmd
        self.token = token
        self.payload = payload or {}

    @property
    def filename(self):
        return self.payload.get(KEY_FILENAME)

    @property
    def reason(self):
        return self.payload.get(KEY_REASON, '')

    @classmethod
    def from_dict(cls, content):
        if not isinstance(content, dict):
            raise MalformedResponseError("expected a JSON object but got %s" % type(content).__name__)
        cmd = content.get(KEY_CMD)
        if not isinstance(cmd, str):
            raise MalformedResponseError("response has no command: %s" % content)
        payload = {k: v for k, v in content.items() if k not in (KEY_CMD, KEY_TOKEN)}
        return cls(cmd.upper(), content.get(KEY_TOKEN), payload)

    @classmethod
    def from_json(cls, text):
        try:
            content = json.loads(text)
        except ValueError as e:
            raise MalformedResponseError("response is not valid JSON: %s" % e) from e
        return cls.from_dict(content)


class BinaryArtifact(CommonEqualityMixin):
    """
    A downloaded program or firmware image. The filename is empty when the server
    didn't send one.
    """
    def __init__(self, data: bytes, filename=''):
        self.data = data
        self.filename = filename or ''

    def __len__(self):
        return len(self.data)

    def __repr__(self):
        return "BinaryArtifact(%r, %d bytes)" % (self.filename, len(self.data))
