from __future__ import annotations

import csv
import io
from datetime import date

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.serializers import to_jsonable


def register(app: Flask, container) -> None:
    def _range() -> tuple[date, date]:
        today = now_local().date()
        start_s = request.args.get("start") or today.replace(day=1).strftime("%Y-%m-%d")
        end_s = request.args.get("end") or today.strftime("%Y-%m-%d")
        return parse_iso_date(start_s), parse_iso_date(end_s)

    def _write_report_csv(*, data, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(
            out,
            fieldnames=["work_date", "staff_id", "check_in", "check_out", "status", "worked_hours", "note"],
        )
        writer.writeheader()
        for row in data.rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/stats/attendance/<facility_id>", methods=["GET"], endpoint="api_stats_attendance")
    def api_stats_attendance(facility_id: str):
        start, end = _range()
        stats = container.statistics_service.attendance_stats(facility_id, start, end)
        return jsonify({"success": True, "data": to_jsonable(stats)})

    @app.route("/api/stats/alerts/<facility_id>", methods=["GET"], endpoint="api_stats_alerts")
    def api_stats_alerts(facility_id: str):
        start, end = _range()
        return jsonify({"success": True, "data": container.statistics_service.alert_stats(facility_id, start, end)})

    @app.route("/api/stats/work-hours/<facility_id>", methods=["GET"], endpoint="api_stats_work_hours")
    def api_stats_work_hours(facility_id: str):
        start, end = _range()
        data = container.statistics_service.work_hours_summary(facility_id, start, end)
        return jsonify({"success": True, "rows": data.rows, "summary": data.summary})

    @app.route("/api/stats/work-hours/<facility_id>/export.csv", methods=["GET"], endpoint="api_stats_work_hours_csv")
    def api_stats_work_hours_csv(facility_id: str):
        start, end = _range()
        data = container.statistics_service.work_hours_summary(facility_id, start, end)
        return _write_report_csv(
            data=data,
            filename=f"work_hours_{facility_id}_{start:%Y%m%d}_{end:%Y%m%d}.csv",
        )
