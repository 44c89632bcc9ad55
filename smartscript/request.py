import dataclasses
from abc import ABC, abstractmethod
from typing import Any, BinaryIO

from .context import trace


class Context(ABC):
    '''The capabilities the interpreter needs from its runtime context.'''

    @abstractmethod
    def write(self, text: str) -> Any:
        pass

    @abstractmethod
    def set_mime_type(self, mime_type: str) -> Any:
        pass

    @abstractmethod
    def get_parameter(self, name: str) -> str | None:
        pass

    @abstractmethod
    def get_persistent_parameter(self, name: str) -> str | None:
        pass

    @abstractmethod
    def set_persistent_parameter(self, name: str, value: str) -> Any:
        pass

    @abstractmethod
    def remove_persistent_parameter(self, name: str) -> Any:
        pass

    @abstractmethod
    def get_temporary_parameter(self, name: str) -> str | None:
        pass

    @abstractmethod
    def set_temporary_parameter(self, name: str, value: str) -> Any:
        pass

    @abstractmethod
    def remove_temporary_parameter(self, name: str) -> Any:
        pass


class HeaderSentError(RuntimeError):
    pass


@dataclasses.dataclass
class ContextConfig:
    encoding: str = 'UTF-8'
    status_code: int = 200
    status_text: str = 'OK'
    mime_type: str = 'text/html'
    length: int | None = None
    # Whether a HTTP header block precedes the body on the first write.
    headers: bool = True


@dataclasses.dataclass(frozen=True)
class RCCookie:
    name: str
    value: str
    max_age: int | None = None
    domain: str | None = None
    path: str | None = None

    def header_line(self) -> str:
        line = f'Set-Cookie: {self.name}="{self.value}"'
        if self.domain is not None:
            line += f'; Domain={self.domain}'
        if self.path is not None:
            line += f'; Path={self.path}'
        if self.max_age is not None:
            line += f'; Max-Age={self.max_age}'
        return line + '\r\n'


class RequestContext(Context):
    '''
    Runtime context over a binary output stream.

    Header fields (encoding, status, mime type, length, cookies) may only be
    changed until the first write, which sends the header.
    '''

    def __init__(
        self,
        output: BinaryIO,
        parameters: dict[str, str] | None = None,
        persistent_parameters: dict[str, str] | None = None,
        cookies: list[RCCookie] | None = None,
        config: ContextConfig | None = None,
    ):
        self._output = output
        self.parameters = {} if parameters is None else parameters
        self.persistent_parameters = (
            {} if persistent_parameters is None else persistent_parameters
        )
        self.temporary_parameters: dict[str, str] = {}
        self.cookies = [] if cookies is None else cookies
        # Copied, so a shared default record is never changed by a script.
        self.config = dataclasses.replace(config or ContextConfig())
        self._header_sent = False

    @property
    def header_sent(self) -> bool:
        return self._header_sent

    def _check_header(self, field: str):
        if self._header_sent:
            raise HeaderSentError(f'cannot set {field}: header already sent')

    def set_encoding(self, encoding: str):
        self._check_header('encoding')
        self.config.encoding = encoding

    def set_status_code(self, status_code: int):
        self._check_header('status code')
        self.config.status_code = status_code

    def set_status_text(self, status_text: str):
        self._check_header('status text')
        self.config.status_text = status_text

    def set_mime_type(self, mime_type: str):
        self._check_header('mime type')
        self.config.mime_type = mime_type

    def set_length(self, length: int):
        self._check_header('length')
        if length < 0:
            raise ValueError(f'negative length: {length}')
        self.config.length = length

    def add_cookie(self, cookie: RCCookie):
        self._check_header('cookies')
        self.cookies.append(cookie)

    def get_parameter(self, name: str) -> str | None:
        return self.parameters.get(name)

    def parameter_names(self) -> set[str]:
        return set(self.parameters)

    def get_persistent_parameter(self, name: str) -> str | None:
        return self.persistent_parameters.get(name)

    def persistent_parameter_names(self) -> set[str]:
        return set(self.persistent_parameters)

    def set_persistent_parameter(self, name: str, value: str):
        self.persistent_parameters[name] = value

    def remove_persistent_parameter(self, name: str):
        self.persistent_parameters.pop(name, None)

    def get_temporary_parameter(self, name: str) -> str | None:
        return self.temporary_parameters.get(name)

    def temporary_parameter_names(self) -> set[str]:
        return set(self.temporary_parameters)

    def set_temporary_parameter(self, name: str, value: str):
        self.temporary_parameters[name] = value

    def remove_temporary_parameter(self, name: str):
        self.temporary_parameters.pop(name, None)

    def header(self) -> str:
        c = self.config
        lines = [f'HTTP/1.1 {c.status_code} {c.status_text}\r\n']

        content_type = f'Content-Type: {c.mime_type}'
        if c.mime_type.startswith('text/'):
            content_type += f'; charset={c.encoding}'
        lines.append(content_type + '\r\n')

        if c.length is not None:
            lines.append(f'Content-Length: {c.length}\r\n')
        for cookie in self.cookies:
            lines.append(cookie.header_line())
        lines.append('\r\n')
        return ''.join(lines)

    def _send_header(self):
        self._header_sent = True
        if self.config.headers:
            header = self.header()
            trace('Sending header: %r', header)
            self._output.write(header.encode('iso-8859-1'))

    def write_bytes(self, data: bytes) -> 'RequestContext':
        if not self._header_sent:
            self._send_header()
        self._output.write(data)
        return self

    def write(self, text: str) -> 'RequestContext':
        return self.write_bytes(text.encode(self.config.encoding))
