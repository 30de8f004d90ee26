"""
Barcode event sources.

Anything that yields decoded barcodes (a keyboard-wedge scanner, a camera
decoding service, a test script) implements ProducesBarcodeEvents. The
engine only sees the resulting events.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, TextIO, Tuple, Union

from exceptions import PackageAssemblyError
from logger import get_logger
from package_models import EventOutcome, PackageEvent, Scanned

logger = get_logger(__name__)


class ProducesBarcodeEvents(ABC):
    """Source of package events."""

    @abstractmethod
    def events(self) -> Iterator[PackageEvent]:
        ...


class KeyboardWedgeSource(ProducesBarcodeEvents):
    """
    Reads codes typed by a keyboard-wedge scanner: one code per line.

    Blank lines are skipped.
    """

    def __init__(self, stream: TextIO):
        self.stream = stream

    def events(self) -> Iterator[PackageEvent]:
        for line in self.stream:
            code = line.strip()
            if code:
                yield Scanned(code)


class ScriptedEventSource(ProducesBarcodeEvents):
    """Replays a fixed sequence of events."""

    def __init__(self, events: Iterable[PackageEvent]):
        self._events = list(events)

    def events(self) -> Iterator[PackageEvent]:
        return iter(self._events)


def feed(store, package_id: str,
         source: ProducesBarcodeEvents) -> List[Tuple[PackageEvent, Union[EventOutcome, PackageAssemblyError]]]:
    """
    Dispatch every event from ``source`` to a package.

    Errors are scoped to the event that raised them: they are logged,
    recorded in place of the outcome and the next event is processed.

    Returns:
        List of (event, EventOutcome or PackageAssemblyError) pairs
    """
    results = []
    for event in source.events():
        try:
            _, outcome = store.dispatch(package_id, event)
        except PackageAssemblyError as e:
            logger.warning(f"Event {event!r} rejected: {e}")
            results.append((event, e))
            continue
        results.append((event, outcome))
    return results
