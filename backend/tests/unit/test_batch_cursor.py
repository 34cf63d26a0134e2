"""
批处理游标单元测试
"""

import pytest

from geo_export.interfaces import BatchStateError, MergeError
from geo_export.models import ExportUnit
from geo_export.pipeline import BatchCursor, CursorPhase


def _units(n: int) -> list[ExportUnit]:
    return [
        ExportUnit(
            project_id=1,
            estimate_id=10,
            file_id=100 + i,
            document_b64="JVBERi0=",
            overlay_set=(),
            output_path=f"company_9/project_1/estimate_10/{i}.pdf",
            display_name=f"{i}.pdf",
        )
        for i in range(n)
    ]


class TestBatchCursor:
    """游标状态迁移测试"""

    def test_initial_state(self):
        cursor = BatchCursor(_units(2))
        assert cursor.phase == CursorPhase.IDLE
        assert cursor.position == 0
        assert len(cursor) == 2

    def test_empty_sequence_done(self):
        """测试空序列启动即完成"""
        cursor = BatchCursor([])
        assert cursor.start() == CursorPhase.DONE
        assert cursor.is_terminal

    def test_advance_to_done(self):
        """测试逐个前进直至完成"""
        units = _units(3)
        cursor = BatchCursor(units)
        cursor.start()
        seen = []
        while cursor.phase == CursorPhase.PROCESSING:
            seen.append(cursor.current())
            cursor.advance()
        assert seen == units
        assert cursor.phase == CursorPhase.DONE
        assert cursor.position == 3
        assert cursor.remaining == 0

    def test_abort_is_terminal(self):
        """测试中止后保持位置且不可再前进"""
        cursor = BatchCursor(_units(3))
        cursor.start()
        cursor.advance()
        error = MergeError("bad pdf")
        cursor.abort(error)
        assert cursor.phase == CursorPhase.ABORTED
        assert cursor.position == 1
        assert cursor.error is error
        with pytest.raises(BatchStateError):
            cursor.advance()
        with pytest.raises(BatchStateError):
            cursor.current()

    def test_stop_is_terminal(self):
        """测试单元之间提前结束"""
        cursor = BatchCursor(_units(3))
        cursor.start()
        cursor.advance()
        cursor.stop()
        assert cursor.phase == CursorPhase.STOPPED
        assert cursor.is_terminal
        assert cursor.position == 1
        assert cursor.remaining == 2
        with pytest.raises(BatchStateError):
            cursor.current()
        with pytest.raises(BatchStateError):
            cursor.stop()

    def test_illegal_transitions(self):
        """测试非法迁移"""
        cursor = BatchCursor(_units(1))
        with pytest.raises(BatchStateError):
            cursor.advance()
        with pytest.raises(BatchStateError):
            cursor.abort(MergeError("x"))
        cursor.start()
        with pytest.raises(BatchStateError):
            cursor.start()
        cursor.advance()
        with pytest.raises(BatchStateError):
            cursor.advance()
