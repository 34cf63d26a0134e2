"""
命令行导出入口（替代网页表单）

示例：
    python tools/run_export.py --company-id 9 --custom-path D:/exports --start 1 --end 50
    python tools/run_export.py --company-id 9 --custom-path D:/exports --start 1 --end 50 --merge-annotations
"""

import argparse
import logging
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def _configure_logging(config) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.logging.log_to_file:
        config.ensure_dirs()
        handlers.append(
            logging.FileHandler(config.storage_dir / config.logging.log_file, encoding="utf-8")
        )
    logging.basicConfig(
        level=config.logging.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
    )


def _print_state(state, tone: str) -> None:
    if state.message:
        print(f"[{tone}] {state.message}")
    if state.error_message:
        print(f"ERROR: {state.error_message}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Bulk export of geo project documents.")
    parser.add_argument("--company-id", required=True, help="公司ID")
    parser.add_argument("--custom-path", required=True, help="输出根目录（后端文件系统，如 D:/path）")
    parser.add_argument("--start", required=True, help="起始范围")
    parser.add_argument("--end", required=True, help="结束范围")
    parser.add_argument("--folder-view", action="store_true", help="文件夹视图（isChecked）")
    parser.add_argument(
        "--merge-annotations",
        action="store_true",
        help="仅下载带批注的PDF（本地逐个合并后上传）",
    )
    parser.add_argument("--config", default="", help="运行期配置YAML（默认：config/runtime.yaml）")
    parser.add_argument("--server", default="", help="覆盖后端地址")
    args = parser.parse_args()

    _add_backend_to_path()
    from geo_export.config import reload_config  # type: ignore
    from geo_export.models import ExportMode, ExportRequest, StatusPhase  # type: ignore
    from geo_export.pipeline import ExportSession  # type: ignore
    from geo_export.remote import BackendClient, NotificationListener  # type: ignore

    config = reload_config(args.config or None)
    _configure_logging(config)

    request = ExportRequest(
        company_id=args.company_id,
        custom_path=args.custom_path,
        start_range=args.start,
        end_range=args.end,
        is_checked=args.folder_view,
        merge_annotations=args.merge_annotations,
    )

    with BackendClient(base_url=args.server or None) as client:
        session = ExportSession(client)
        if request.mode == ExportMode.BACKEND_EXPORT:
            with NotificationListener(session.channel, url=args.server or None):
                session.submit(request)
                state = session.wait_for_backend()
        else:
            job = session.submit(request)
            state = session.state
            print(f"units: {len(job.unit_results)}/{job.units_total}")

        _print_state(state, session.channel.status_tone())
        session.teardown()

    return 0 if state.phase == StatusPhase.SUCCEEDED else 1


if __name__ == "__main__":
    raise SystemExit(main())
