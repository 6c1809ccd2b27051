import os
import sys
import argparse
from pathlib import Path
from dotenv import load_dotenv
import uvicorn

# 프로젝트 루트를 Python path에 추가
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# 환경 변수 로드 (infra_monitor 모듈 가져오기 전에 수행)
load_dotenv()


def _get_default_workers() -> int:
    """환경 변수에서 기본 워커 수를 읽고 유효성 검사를 수행합니다."""
    value = os.getenv("UVICORN_WORKERS", "1")
    try:
        return max(int(value), 1)
    except ValueError:
        print(f"⚠️  UVICORN_WORKERS 값 '{value}'이(가) 정수가 아닙니다. 기본값 1을 사용합니다.")
        return 1


def main():
    """서비스 실행 메인 함수"""
    parser = argparse.ArgumentParser(
        description="Unified Infrastructure Monitor API Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
예시:
  # 기본 실행 (127.0.0.1:8000, 자동 리로드 활성화)
  python run.py

  # 외부 접속 허용, 프로덕션 모드
  python run.py --host 0.0.0.0 --port 8080 --no-reload

접속 URL:
  - API 문서 (Swagger): http://localhost:8000/docs
  - 클러스터 목록: http://localhost:8000/api/v1/infrastructure
  - 헬스체크: http://localhost:8000/api/v1/system/health
  - 메트릭: http://localhost:8000/api/v1/system/metrics
        """
    )
    parser.add_argument("--host", default="127.0.0.1", help="바인딩할 호스트 (기본값: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="바인딩할 포트 (기본값: 8000)")
    parser.add_argument("--reload", action="store_true", default=True, help="코드 변경 시 자동 재시작 (기본값: True)")
    parser.add_argument("--no-reload", action="store_false", dest="reload", help="자동 재시작 비활성화 (프로덕션 모드)")
    parser.add_argument(
        "--workers",
        type=int,
        default=_get_default_workers(),
        help="Uvicorn 워커 프로세스 수 (기본값: UVICORN_WORKERS 환경변수 또는 1)"
    )

    args = parser.parse_args()

    if args.workers < 1:
        args.workers = 1

    if args.reload and args.workers > 1:
        print("⚠️  reload 모드에서는 다중 워커를 사용할 수 없습니다. reload를 비활성화합니다.")
        args.reload = False

    if args.workers > 1:
        print("⚠️  멀티 워커 모드: Keystone 토큰과 flavor 캐시는 워커마다 따로 유지됩니다.")

    try:
        from infra_monitor.config import settings
        print("✅ 환경변수 로드 완료")
        print(f"   - Provider config: {settings.INFRASTRUCTURE_CONFIG_PATH}")
        print(f"   - Hardware inventory: {settings.HARDWARE_INVENTORY_PATH}")
        print(f"   - Provider timeout: {settings.PROVIDER_TIMEOUT}s")
    except Exception as e:
        print(f"⚠️  환경변수 로드 실패: {e}")
        sys.exit(1)

    print(f"\n{'='*60}")
    print("🚀 Unified Infrastructure Monitor")
    print(f"{'='*60}")
    print(f"📡 Server: http://{args.host}:{args.port}")
    print(f"📚 API Docs (Swagger): http://{args.host}:{args.port}/docs")
    print(f"🧵 Workers: {args.workers}")
    print(f"{'='*60}\n")

    try:
        uvicorn.run(
            "infra_monitor.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=args.workers
        )
    except KeyboardInterrupt:
        print("\n\n👋 서버를 종료합니다...")


if __name__ == "__main__":
    main()
