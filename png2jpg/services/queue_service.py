"""Очередь конвертации: список записей, которые видит пользователь.

Принципы:
- SRP: хранит записи и переводит их между статусами; сама конвертация делегируется `ConvertService`.
- Не зависит от UI, поэтому одинаково используется окном и тестами.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from png2jpg.config import ConverterSettings
from png2jpg.models.image_model import ConversionRecord, ConversionResult, ConversionStatus, SourceImage
from png2jpg.services.convert_service import CancellationToken, ConvertService

logger = logging.getLogger(__name__)

RecordCallback = Callable[[ConversionRecord], None]


@dataclass(frozen=True)
class QueueSummary:
    total: int
    pending: int
    converting: int
    completed: int
    failed: int
    original_bytes: int
    converted_bytes: int
    completed_original_bytes: int


class ConversionQueue:
    def __init__(self, convert_service: Optional[ConvertService] = None, settings: Optional[ConverterSettings] = None) -> None:
        self.settings = settings or (convert_service.settings if convert_service else ConverterSettings())
        self._service = convert_service or ConvertService(settings=self.settings)
        self.quality: float = self.settings.quality
        self._records: List[ConversionRecord] = []
        # один токен на каждый идущий пакет; cancel() вызывается из другого потока
        self._cancel_tokens: Set[CancellationToken] = set()
        self._tokens_lock = threading.Lock()

    @property
    def records(self) -> Tuple[ConversionRecord, ...]:
        return tuple(self._records)

    def get(self, record_id: str) -> ConversionRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise KeyError(record_id)

    def add(self, sources: Iterable[SourceImage]) -> List[ConversionRecord]:
        """Добавляет PNG-исходники в очередь в статусе IDLE.

        Файлы других типов отбрасываются с предупреждением в лог.

        Raises:
            ValueError: если были переданы файлы, но ни один не является PNG.
        """
        offered = list(sources)
        added: List[ConversionRecord] = []
        for source in offered:
            if not source.is_png:
                logger.warning(f"Skipping {source.name}: {source.mime_type} is not a PNG image")
                continue
            added.append(ConversionRecord(source=source))

        if offered and not added:
            raise ValueError("Конвертировать можно только PNG-файлы")
        self._records.extend(added)
        return added

    def remove(self, record_id: str) -> ConversionRecord:
        record = self.get(record_id)
        self._records.remove(record)
        return record

    def pending(self) -> List[ConversionRecord]:
        return [r for r in self._records if r.status is ConversionStatus.IDLE]

    def cancel(self) -> None:
        """Отменяет все идущие пакеты в ближайшей точке приостановки."""
        with self._tokens_lock:
            tokens = list(self._cancel_tokens)
        for token in tokens:
            token.cancel()

    async def convert(self, record_id: str, on_update: Optional[RecordCallback] = None) -> ConversionRecord:
        """Конвертирует одну запись (без повторов при ошибке)."""
        records = await self._convert_records([self.get(record_id)], on_update)
        return records[0]

    async def convert_pending(self, on_update: Optional[RecordCallback] = None) -> List[ConversionRecord]:
        """Конвертирует все записи в статусе IDLE параллельно."""
        return await self._convert_records(self.pending(), on_update)

    def summary(self) -> QueueSummary:
        counts: Dict[ConversionStatus, int] = {status: 0 for status in ConversionStatus}
        for record in self._records:
            counts[record.status] += 1
        return QueueSummary(
            total=len(self._records),
            pending=counts[ConversionStatus.IDLE],
            converting=counts[ConversionStatus.CONVERTING],
            completed=counts[ConversionStatus.COMPLETED],
            failed=counts[ConversionStatus.ERROR],
            original_bytes=sum(r.original_size for r in self._records),
            converted_bytes=sum(r.converted_size or 0 for r in self._records),
            completed_original_bytes=sum(
                r.original_size for r in self._records if r.status is ConversionStatus.COMPLETED
            ),
        )

    # ---- Helpers ----
    async def _convert_records(
        self, records: List[ConversionRecord], on_update: Optional[RecordCallback]
    ) -> List[ConversionRecord]:
        if not records:
            return []

        for record in records:
            record.mark_converting()
            if on_update:
                on_update(record)

        def apply(index: int, result: ConversionResult) -> None:
            record = records[index]
            if result.ok:
                record.mark_completed(result.converted)
            else:
                record.mark_failed(str(result.error) or type(result.error).__name__)
            if on_update:
                on_update(record)

        token = CancellationToken()
        with self._tokens_lock:
            self._cancel_tokens.add(token)
        try:
            await self._service.convert_many(
                [r.source for r in records], self.quality, cancel_token=token, on_result=apply
            )
        except BaseException as exc:
            # ни одна запись не должна навсегда остаться в CONVERTING
            for record in records:
                if record.status is ConversionStatus.CONVERTING:
                    record.mark_failed(str(exc) or type(exc).__name__)
                    if on_update:
                        on_update(record)
            raise
        finally:
            with self._tokens_lock:
                self._cancel_tokens.discard(token)
        return records
