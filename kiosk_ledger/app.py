"""Local JSON API over the kiosk ledger."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from flask import Flask, Response, jsonify, request
from itsdangerous import BadData, URLSafeTimedSerializer
from pydantic import BaseModel, ValidationError

from . import schemas
from .codec import InvalidDocumentShape, export_filename
from .config import Settings, get_settings
from .ledger import DuplicateInventoryName, LedgerManager
from .models import AppData


SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _get_payload(req: Any) -> Dict[str, Any]:
    payload = req.get_json(silent=True)
    if isinstance(payload, Mapping):
        return dict(payload)
    return {}


def _validation_messages(exc: ValidationError) -> List[Dict[str, str]]:
    return [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": str(error.get("msg", "")),
        }
        for error in exc.errors()
    ]


def _document_summary(data: AppData) -> Dict[str, Any]:
    return {
        "inventory": len(data.inventory),
        "purchases": len(data.purchases),
        "sales": len(data.sales),
        "otherExpenses": len(data.other_expenses),
        "rent": data.rent,
    }


def create_app(
    storage_path: str | Path | None = None,
    settings: Optional[Settings] = None,
) -> Flask:
    settings = settings or get_settings()
    storage = Path(storage_path) if storage_path is not None else settings.storage_path
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["LEDGER_SETTINGS"] = settings
    app.logger.setLevel(settings.log_level)

    manager = LedgerManager(storage_path=storage, storage_key=settings.storage_key)
    app.extensions["kiosk_ledger"] = manager

    import_serializer = URLSafeTimedSerializer(
        settings.secret_key, salt=settings.import_token_salt
    )

    def _json_error(
        message: str,
        status: int = 400,
        *,
        code: Optional[str] = None,
        details: Optional[List[Dict[str, str]]] = None,
    ) -> Tuple[Response, int]:
        payload: Dict[str, Any] = {"error": message}
        if code:
            payload["code"] = code
        if details:
            payload["details"] = details
        return jsonify(payload), status

    def _parse(schema: Type[SchemaT]) -> SchemaT:
        return schema.model_validate(_get_payload(request))

    @app.errorhandler(ValidationError)
    def _handle_validation_error(exc: ValidationError) -> Any:
        return _json_error(
            "Invalid request payload", 400, code="invalid_payload", details=_validation_messages(exc)
        )

    @app.errorhandler(ValueError)
    def _handle_value_error(exc: ValueError) -> Any:
        return _json_error(str(exc), 400, code="invalid_value")

    @app.get("/api/data")
    def get_data() -> Any:
        return jsonify(manager.snapshot.to_dict())

    @app.get("/api/report")
    def get_report() -> Any:
        return jsonify(manager.report().to_dict())

    @app.get("/api/inventory")
    def list_inventory() -> Any:
        return jsonify([entry.to_dict() for entry in manager.snapshot.inventory])

    @app.get("/api/inventory/summary")
    def inventory_summary() -> Any:
        return jsonify([line.to_dict() for line in manager.stock_summary()])

    @app.post("/api/inventory")
    def create_inventory_item() -> Any:
        payload = _parse(schemas.InventoryItemCreate)
        try:
            created = manager.create_inventory_item(payload.to_item())
        except DuplicateInventoryName as exc:
            return _json_error(str(exc), 409, code="duplicate_item")
        return jsonify(created.to_dict()), 201

    @app.put("/api/inventory/<string:item_id>")
    def update_inventory_item(item_id: str) -> Any:
        payload = _parse(schemas.InventoryItemUpdate)
        item = payload.to_item(item_id)
        matched = manager.update_inventory_item(item)
        return jsonify({"matched": matched, "item": item.to_dict()})

    @app.delete("/api/inventory/<string:item_id>")
    def delete_inventory_item(item_id: str) -> Any:
        matched = manager.delete_inventory_item(item_id)
        return jsonify({"matched": matched})

    @app.get("/api/purchases")
    def list_purchases() -> Any:
        return jsonify([purchase.to_dict() for purchase in manager.snapshot.purchases])

    @app.post("/api/purchases")
    def record_purchase() -> Any:
        purchase = _parse(schemas.PurchaseCreate).to_purchase()
        entry = manager.record_purchase(purchase)
        recorded = {**purchase.to_dict(), "date": entry.date}
        return jsonify({"purchase": recorded, "inventory_item": entry.to_dict()}), 201

    @app.get("/api/sales")
    def list_sales() -> Any:
        return jsonify([sale.to_dict() for sale in manager.sales_history()])

    @app.post("/api/sales")
    def record_sale() -> Any:
        payload = _parse(schemas.SaleCreate)
        sale = manager.record_sale(payload.to_sale())
        return jsonify(sale.to_dict()), 201

    @app.put("/api/sales/<string:sale_id>")
    def update_sale(sale_id: str) -> Any:
        payload = _parse(schemas.SaleUpdate)
        keep_date = "date" not in payload.model_fields_set
        matched = manager.update_sale(payload.to_sale(sale_id), keep_date=keep_date)
        stored = next((s for s in manager.snapshot.sales if s.id == sale_id), None)
        return jsonify({"matched": matched, "sale": stored.to_dict() if stored else None})

    @app.delete("/api/sales/<string:sale_id>")
    def delete_sale(sale_id: str) -> Any:
        return jsonify({"matched": manager.delete_sale(sale_id)})

    @app.put("/api/rent")
    def set_rent() -> Any:
        payload = _parse(schemas.RentUpdate)
        return jsonify({"rent": manager.set_rent(payload.rent)})

    @app.get("/api/expenses")
    def list_expenses() -> Any:
        return jsonify([expense.to_dict() for expense in manager.snapshot.other_expenses])

    @app.post("/api/expenses")
    def add_expense() -> Any:
        payload = _parse(schemas.ExpenseCreate)
        expense = manager.add_expense(payload.to_expense())
        return jsonify(expense.to_dict()), 201

    @app.delete("/api/expenses/<string:expense_id>")
    def delete_expense(expense_id: str) -> Any:
        return jsonify({"matched": manager.delete_expense(expense_id)})

    @app.get("/api/data/export")
    def export_data() -> Response:
        content = manager.export_document()
        filename = export_filename(prefix=settings.export_filename_prefix)
        response = Response(content, mimetype="application/json")
        response.headers["Content-Disposition"] = f"attachment; filename={filename}"
        return response

    @app.post("/api/data/import")
    def preview_import() -> Any:
        upload = request.files.get("file")
        if upload is not None:
            content = upload.read()
        else:
            content = request.get_data()
        try:
            imported = manager.preview_import(content)
        except InvalidDocumentShape as exc:
            app.logger.info("Rejected import: %s", exc)
            return _json_error(
                f"Failed to import data. Please ensure you are uploading a valid backup file. Error: {exc}",
                400,
                code="invalid_document",
            )
        token = import_serializer.dumps(imported.to_dict())
        return jsonify(
            {
                "summary": _document_summary(imported),
                "current": _document_summary(manager.snapshot),
                "token": token,
                "expires_in": settings.import_token_max_age,
                "message": "This will overwrite all current data. Confirm to proceed.",
            }
        )

    @app.post("/api/data/import/confirm")
    def confirm_import() -> Any:
        payload = _parse(schemas.ImportConfirmation)
        try:
            document = import_serializer.loads(
                payload.token, max_age=settings.import_token_max_age
            )
        except BadData:
            return _json_error("Import confirmation expired or invalid", 400, code="invalid_token")
        data = manager.replace_document(AppData.from_document(document))
        return jsonify({"status": "success", "summary": _document_summary(data)})

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=True)
