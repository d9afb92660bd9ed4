"""
Cancellation Token - 협조적 실행 취소 신호

SSE 클라이언트 연결 해제 시 API 계층이 cancel()을 호출하고,
Orchestrator는 각 청크 처리 전에 observe()로 확인합니다.
"""


class CancellationToken:
    """한 번 설정되면 되돌릴 수 없는 취소 플래그"""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def observe(self) -> bool:
        """취소 요청 여부"""
        return self._cancelled

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
