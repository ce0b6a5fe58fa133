from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from eda_dashboard.api.backend_client import BackendClient
from eda_dashboard.charts.chart_adapter import build_figure, figure_json
from eda_dashboard.controller.session import DashboardController, UploadStatus
from eda_dashboard.errors import EdaDashboardError
from eda_dashboard.models.contracts import AggregationFunction, ChartKind


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload a CSV to the EDA backend, aggregate it and export the chart.",
    )
    parser.add_argument("csv", type=Path, help="CSV file to upload")
    parser.add_argument("--cat-col", required=True, help="categorical (group-by) column")
    parser.add_argument("--con-col", required=True, help="continuous column to aggregate")
    parser.add_argument(
        "--agg-func",
        default=AggregationFunction.MEAN.value,
        choices=[fn.value for fn in AggregationFunction],
    )
    parser.add_argument("--kind", default=ChartKind.BAR.value, choices=[kind.value for kind in ChartKind])
    parser.add_argument("--backend-url", default=None, help="overrides EDA_BACKEND_URL")
    parser.add_argument("--output", type=Path, default=None, help="write .json or .html; stdout when omitted")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    controller = DashboardController(BackendClient(args.backend_url))

    try:
        controller.select_file(args.csv.name, args.csv.read_bytes(), "text/csv")
        state = controller.upload()
    except EdaDashboardError as exc:
        print(f"upload rejected: {exc.message}", file=sys.stderr)
        return 2
    print(state.upload_message, file=sys.stderr)
    if state.upload_status is UploadStatus.UPLOAD_FAILED:
        return 1
    if state.notice:
        print(state.notice, file=sys.stderr)

    controller.set_aggregation_form(args.cat_col, args.con_col, args.agg_func)
    try:
        state = controller.perform_aggregation()
    except EdaDashboardError as exc:
        print(exc.message, file=sys.stderr)
        return 2
    if state.notice:
        print(state.notice, file=sys.stderr)
        return 1

    rendered = controller.render_chart(args.kind)
    if rendered.error or rendered.spec is None:
        print(rendered.error or "no aggregation result", file=sys.stderr)
        return 1

    if args.output is not None and args.output.suffix.lower() == ".html":
        build_figure(rendered.spec).write_html(str(args.output), config=rendered.spec.config)
    else:
        text = json.dumps(figure_json(rendered.spec), ensure_ascii=False, indent=2)
        if args.output is None:
            print(text)
        else:
            args.output.write_text(text, encoding="utf-8")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
