"""
Key-value explorer component.

Browse and edit the stores granted to this component. Every request needs
HTTP Basic credentials matching the component variable "kv_credentials".

API (relative to the mount point):
- GET    /                              HTML explorer page
- GET    /api/stores                    granted store labels
- GET    /api/stores/{store}            keys in a store
- GET    /api/stores/{store}/keys/{key} one entry
- POST   /api/stores/{store}            write an entry
- DELETE /api/stores/{store}/keys/{key} remove an entry
"""

import base64
import binascii
import html
import logging

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse

from app.middleware.auth import BasicAuthMiddleware
from components.context import ComponentContext
from kv_store import AccessDeniedError, KeyValueStore, NoSuchStoreError, StoreError
from models import KeyListResponse, KeyValueEntry, SetValueRequest, StoreListResponse

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Key-value explorer</title>
  <style>
    body {{ font-family: sans-serif; margin: 2rem; }}
    table {{ border-collapse: collapse; }}
    td, th {{ border: 1px solid #ccc; padding: 0.3rem 0.6rem; text-align: left; }}
  </style>
</head>
<body>
  <h1>Key-value explorer</h1>
  <label>Store <select id="store">{options}</select></label>
  <table><thead><tr><th>Key</th><th>Value</th><th></th></tr></thead><tbody id="entries"></tbody></table>
  <h2>Set</h2>
  <input id="key" placeholder="key"> <input id="value" placeholder="value"> <button id="save">Save</button>
  <script>
    const base = "{base}";
    const storeSelect = document.getElementById("store");
    async function load() {{
      const store = encodeURIComponent(storeSelect.value);
      const listing = await (await fetch(`${{base}}/api/stores/${{store}}`)).json();
      const body = document.getElementById("entries");
      body.innerHTML = "";
      for (const key of listing.keys) {{
        const entry = await (await fetch(`${{base}}/api/stores/${{store}}/keys/${{encodeURIComponent(key)}}`)).json();
        const row = body.insertRow();
        row.insertCell().textContent = key;
        row.insertCell().textContent = entry.value;
        const button = document.createElement("button");
        button.textContent = "Delete";
        button.onclick = async () => {{
          await fetch(`${{base}}/api/stores/${{store}}/keys/${{encodeURIComponent(key)}}`, {{method: "DELETE"}});
          load();
        }};
        row.insertCell().appendChild(button);
      }}
    }}
    document.getElementById("save").onclick = async () => {{
      const store = encodeURIComponent(storeSelect.value);
      await fetch(`${{base}}/api/stores/${{store}}`, {{
        method: "POST",
        headers: {{"Content-Type": "application/json"}},
        body: JSON.stringify({{key: document.getElementById("key").value, value: document.getElementById("value").value}}),
      }});
      load();
    }};
    storeSelect.onchange = load;
    load();
  </script>
</body>
</html>
"""


def encode_value(value: bytes) -> tuple[str, str]:
    """Text for display: UTF-8 when possible, base64 otherwise."""
    try:
        return value.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        return base64.b64encode(value).decode("ascii"), "base64"


def decode_value(value: str, encoding: str) -> bytes:
    if encoding == "base64":
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error:
            raise HTTPException(status_code=400, detail="Value is not valid base64")
    return value.encode("utf-8")


def create_app(context: ComponentContext) -> FastAPI:
    """Build the explorer's ASGI app."""
    labels = list(context.component.key_value_stores)
    credentials = context.variables.get("kv_credentials", "")

    api = FastAPI(title="Key-value explorer", docs_url=None, redoc_url=None, openapi_url=None)
    api.add_middleware(BasicAuthMiddleware, credentials=credentials, realm="kv-explorer")

    def open_store(label: str) -> KeyValueStore:
        try:
            return context.open_store(label)
        except NoSuchStoreError:
            raise HTTPException(status_code=404, detail=f"Store '{label}' not found")
        except AccessDeniedError:
            raise HTTPException(status_code=403, detail=f"Access to store '{label}' is not allowed")

    def store_call(label: str, operation, *args):
        try:
            return operation(*args)
        except StoreError as e:
            logger.error(f"Key-value explorer store error: store={label}, error={e}")
            raise HTTPException(status_code=500, detail=f"Key-value store error: {str(e)}")

    @api.get("/", response_class=HTMLResponse)
    def explorer_page(request: Request):
        """Explorer UI."""
        base = request.scope.get("root_path", "").rstrip("/")
        options = "".join(
            f'<option value="{html.escape(label)}">{html.escape(label)}</option>' for label in labels
        )
        return HTMLResponse(PAGE_TEMPLATE.format(options=options, base=html.escape(base)))

    @api.get("/api/stores", response_model=StoreListResponse)
    def list_stores():
        return StoreListResponse(stores=labels)

    @api.get("/api/stores/{store}", response_model=KeyListResponse)
    def list_keys(store: str):
        kv = open_store(store)
        return KeyListResponse(store=store, keys=store_call(store, kv.get_keys))

    @api.get("/api/stores/{store}/keys/{key:path}", response_model=KeyValueEntry)
    def get_value(store: str, key: str):
        kv = open_store(store)
        value = store_call(store, kv.get, key)
        if value is None:
            raise HTTPException(status_code=404, detail=f"Key '{key}' not found")
        text, encoding = encode_value(value)
        return KeyValueEntry(store=store, key=key, value=text, encoding=encoding)

    @api.post("/api/stores/{store}", response_model=KeyValueEntry, status_code=201)
    def set_value(store: str, entry: SetValueRequest):
        kv = open_store(store)
        store_call(store, kv.set, entry.key, decode_value(entry.value, entry.encoding))
        logger.info(f"Key-value explorer set key: store={store}, key={entry.key}")
        return KeyValueEntry(store=store, key=entry.key, value=entry.value, encoding=entry.encoding)

    @api.delete("/api/stores/{store}/keys/{key:path}", status_code=204)
    def delete_value(store: str, key: str):
        kv = open_store(store)
        store_call(store, kv.delete, key)
        logger.info(f"Key-value explorer deleted key: store={store}, key={key}")
        return Response(status_code=204)

    return api
