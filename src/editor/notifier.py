"""사용자 알림.

저장 실패처럼 편집 내용을 잃을 수 있는 상황은 조용한 로그가 아니라
사용자가 확인해야 하는 차단형 알림으로 보여 준다.
화면 계층은 Notifier를 구현해 대화상자를 띄운다.
"""

import logging
import sys

logger = logging.getLogger(__name__)


class Notifier:
    """차단형 알림 인터페이스. 기본 구현은 stderr에 출력한다."""

    def alert(self, message: str) -> None:
        logger.warning("알림: %s", message)
        print(message, file=sys.stderr)


class RecordingNotifier(Notifier):
    """받은 메시지를 모아 두기만 한다. 헤드리스 실행과 테스트용."""

    def __init__(self):
        self.messages: list[str] = []

    def alert(self, message: str) -> None:
        logger.warning("알림: %s", message)
        self.messages.append(message)
