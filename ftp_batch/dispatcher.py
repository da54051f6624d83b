"""Batch operation dispatcher.

Runs one remote file operation per input record against a single FTP
session, collecting output records or per-record errors.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Union

from ftp_batch.ftp.connection import FTPConnectionConfig, open_session
from ftp_batch.ftp.exceptions import (
    BatchOperationError,
    FTPError,
    MissingBinaryDataError,
    ParameterError,
    UnsupportedOperationError,
)
from ftp_batch.ftp.streams import BufferStream, ChunkCollector
from ftp_batch.items import BinaryData, Item
from ftp_batch.utils.validators import validate_remote_path

logger = logging.getLogger("ftp_batch.dispatcher")


class Operation(Enum):
    """Remote operation applied to every record of a batch."""
    DELETE = "delete"
    DOWNLOAD = "download"
    LIST = "list"
    MKDIR = "mkdir"
    RMDIR = "rmdir"
    UPLOAD = "upload"

    @classmethod
    def parse(cls, value: Union["Operation", str]) -> "Operation":
        """
        Convert a value to an Operation.

        Raises:
            UnsupportedOperationError: If the value names no known operation
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedOperationError(str(value))


# Operations reading "path" vs "folder_path", and those using a binary property
PATH_OPERATIONS = {Operation.DELETE, Operation.DOWNLOAD, Operation.UPLOAD}
FOLDER_OPERATIONS = {Operation.LIST, Operation.MKDIR, Operation.RMDIR}
BINARY_OPERATIONS = {Operation.DOWNLOAD, Operation.UPLOAD}

# A literal/template string, or a callable receiving (item, index)
ParameterValue = Union[str, Callable[[Item, int], str]]


class FTPSession(Protocol):
    """What the dispatcher needs from a connected session."""

    def list(self, path: str): ...

    def remove(self, path: str): ...

    def remove_dir(self, path: str): ...

    def ensure_dir(self, path: str): ...

    def download_to(self, sink, path: str): ...

    def upload_from(self, source, path: str): ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class OperationParameters:
    """
    Node parameters of a batch.

    "operation" is read once for the whole batch. The other values are
    resolved against each record: strings are str.format templates over
    the record's JSON ("/in/{name}.csv"), callables get (item, index).
    """
    operation: Union[Operation, str] = Operation.LIST
    path: ParameterValue = ""
    folder_path: ParameterValue = ""
    binary_property: ParameterValue = "data"

    def resolve(self, name: str, item: Item, index: int) -> str:
        """
        Resolve one per-record parameter.

        Raises:
            ParameterError: If the template or callable cannot be evaluated
        """
        value = getattr(self, name)
        try:
            if callable(value):
                return str(value(item, index))
            return value.format_map(item.json)
        except (KeyError, IndexError, AttributeError, TypeError, ValueError) as e:
            raise ParameterError(name, index, e)


@dataclass(frozen=True)
class OperationRequest:
    """One unit of work derived from one input record."""
    operation: Operation
    index: int
    path: str = ""
    folder_path: str = ""
    binary_property: str = "data"


@dataclass
class RecordOutcome:
    """Result of one record: produced items, or the error it raised."""
    index: int
    items: List[Item] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        """True if the record succeeded."""
        return self.error is None


# Type alias for the session factory
SessionFactory = Callable[[FTPConnectionConfig], FTPSession]


class BatchDispatcher:
    """Executes one operation per input record over a single session."""

    def __init__(
        self,
        config: FTPConnectionConfig,
        parameters: OperationParameters,
        continue_on_fail: bool = False,
        node_name: str = "Basic FTP",
        session_factory: Optional[SessionFactory] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            config: Connection configuration
            parameters: Operation and per-record parameters
            continue_on_fail: Record per-record failures instead of aborting
            node_name: Name used to identify this step in fatal errors
            session_factory: Creates a connected session from config,
                defaults to open_session
        """
        self._config = config
        self._parameters = parameters
        self._continue_on_fail = continue_on_fail
        self._node_name = node_name
        self._session_factory = session_factory or open_session
        self._handlers: Dict[Operation, Callable[[FTPSession, OperationRequest, Item], List[Item]]] = {
            Operation.DELETE: self._delete,
            Operation.DOWNLOAD: self._download,
            Operation.LIST: self._list,
            Operation.MKDIR: self._mkdir,
            Operation.RMDIR: self._rmdir,
            Operation.UPLOAD: self._upload,
        }

    @property
    def continue_on_fail(self) -> bool:
        """True if per-record failures are isolated."""
        return self._continue_on_fail

    def run(self, items: List[Item]) -> List[Item]:
        """
        Run the batch.

        Connects once, processes the records strictly in order and always
        closes the session before returning or raising.

        Args:
            items: Input records

        Returns:
            Output records in input order; a List record may produce
            several, every other record exactly one

        Raises:
            BatchOperationError: If the operation is unknown or the session
                cannot be established (item_index is None), or on the first
                failing record when continue_on_fail is disabled. The
                underlying error is kept as original_error.
        """
        operation = self._resolve_operation()
        logger.info(f"Starting {operation.value} batch of {len(items)} items")

        try:
            session = self._session_factory(self._config)
        except FTPError as e:
            raise BatchOperationError(self._node_name, operation.value, None, e) from e

        results: List[Item] = []
        try:
            for outcome in self._execute_all(session, operation, items):
                if outcome.ok:
                    results.extend(outcome.items)
                    continue

                if not self._continue_on_fail:
                    raise BatchOperationError(
                        self._node_name,
                        operation.value,
                        outcome.index,
                        outcome.error,
                        results=results,
                    ) from outcome.error

                logger.warning(f"Item {outcome.index} failed: {outcome.error}")
                results.append(Item(
                    json={"error": str(outcome.error)},
                    paired_item=outcome.index,
                ))
        finally:
            self._close(session)

        logger.info(f"Finished {operation.value} batch: {len(results)} output items")
        return results

    def _resolve_operation(self) -> Operation:
        """Parse the batch operation, before any connection is made."""
        value = self._parameters.operation
        try:
            operation = Operation.parse(value)
            if operation not in self._handlers:
                raise UnsupportedOperationError(operation.value)
        except UnsupportedOperationError as e:
            name = value.value if isinstance(value, Operation) else str(value)
            raise BatchOperationError(self._node_name, name, None, e) from e
        return operation

    def _close(self, session: FTPSession) -> None:
        try:
            session.close()
        except Exception as e:
            logger.warning(f"Error closing FTP session: {e}")

    def _execute_all(
        self,
        session: FTPSession,
        operation: Operation,
        items: List[Item]
    ) -> Iterator[RecordOutcome]:
        """Yield one outcome per record, lazily and in input order."""
        handler = self._handlers[operation]

        for index, item in enumerate(items):
            try:
                request = self._build_request(operation, item, index)
                logger.debug(f"Item {index}: {request}")
                produced = handler(session, request, item)
            except Exception as e:
                yield RecordOutcome(index=index, error=e)
                continue
            yield RecordOutcome(index=index, items=produced)

    def _build_request(self, operation: Operation, item: Item, index: int) -> OperationRequest:
        """Resolve the parameters the operation needs for one record."""
        values = {}
        if operation in PATH_OPERATIONS:
            values["path"] = self._parameters.resolve("path", item, index)
        if operation in FOLDER_OPERATIONS:
            values["folder_path"] = self._parameters.resolve("folder_path", item, index)
        if operation in BINARY_OPERATIONS:
            values["binary_property"] = self._parameters.resolve("binary_property", item, index)

        for name in ("path", "folder_path"):
            if name in values:
                is_valid, error = validate_remote_path(values[name])
                if not is_valid:
                    raise ParameterError(name, index, ValueError(error))
        return OperationRequest(operation=operation, index=index, **values)

    def _delete(self, session: FTPSession, request: OperationRequest, item: Item) -> List[Item]:
        response = session.remove(request.path)
        return [Item(json=_as_json(response), paired_item=request.index)]

    def _download(self, session: FTPSession, request: OperationRequest, item: Item) -> List[Item]:
        collector = ChunkCollector(request.path)
        session.download_to(collector, request.path)

        binary = dict(item.binary)
        binary[request.binary_property] = BinaryData.prepare(
            collector.getvalue(),
            collector.file_name,
        )
        return [Item(json=dict(item.json), binary=binary, paired_item=request.index)]

    def _list(self, session: FTPSession, request: OperationRequest, item: Item) -> List[Item]:
        entries = session.list(request.folder_path)
        if not entries:
            return [Item(json={"success": True}, paired_item=request.index)]
        return [Item(json=_as_json(entry), paired_item=request.index) for entry in entries]

    def _mkdir(self, session: FTPSession, request: OperationRequest, item: Item) -> List[Item]:
        session.ensure_dir(request.folder_path)
        return [Item(json={"success": True}, paired_item=request.index)]

    def _rmdir(self, session: FTPSession, request: OperationRequest, item: Item) -> List[Item]:
        session.remove_dir(request.folder_path)
        return [Item(json={"success": True}, paired_item=request.index)]

    def _upload(self, session: FTPSession, request: OperationRequest, item: Item) -> List[Item]:
        binary = item.binary.get(request.binary_property)
        if binary is None:
            raise MissingBinaryDataError(request.index, request.binary_property)

        with BufferStream(binary.data) as stream:
            response = session.upload_from(stream, request.path)
        return [Item(json=_as_json(response), paired_item=request.index)]


def _as_json(value) -> dict:
    """
    Turn a session acknowledgement into an output payload.

    Objects with to_dict() and mappings are used as they are; any other
    value is wrapped as {"result": value}.
    """
    if value is None:
        return {}
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        return dict(value)
    return {"result": value}


def run_batch(
    items: List[Item],
    config: FTPConnectionConfig,
    parameters: OperationParameters,
    continue_on_fail: bool = False,
) -> List[Item]:
    """
    Run one batch with a fresh session.

    Args:
        items: Input records
        config: Connection configuration
        parameters: Operation and per-record parameters
        continue_on_fail: Record per-record failures instead of aborting

    Returns:
        Output records
    """
    dispatcher = BatchDispatcher(config, parameters, continue_on_fail=continue_on_fail)
    return dispatcher.run(items)
