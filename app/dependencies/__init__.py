"""
Dependencies module

서비스 계층이 aggregate_repositories를 import하므로 여기서 서비스 의존성을
재export하지 않는다 (순환 import 방지). 라우터는 하위 모듈에서 직접 import.
"""
