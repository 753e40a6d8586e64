"""HTTP collaborators: EasyEDA component data, JLCPCB details, 3D models."""

import logging
import re

import requests

from errors import ComponentNotFoundError

logger = logging.getLogger(__name__)

API_VERSION = "6.4.19.5"
COMPONENT_URL = "https://easyeda.com/api/products/{lcsc_id}/components?version=" + API_VERSION
COMMUNITY_COMPONENT_URL = (
    "https://easyeda.com/api/components/{uuid}?version=" + API_VERSION + "&uuid={uuid}"
)
MODEL_STEP_URL = "https://modules.easyeda.com/qAxj6KHrDKw4blvCG8QJPs7Y/{uuid}"
DETAILS_URL = (
    "https://jlcpcb.com/api/overseas-pcb-order/v1/shoppingCart/smtGood/"
    "selectSmtComponentDetail"
)

_LCSC_ID = re.compile(r"^C\d+$")


def is_lcsc_id(component_id: str) -> bool:
    return bool(_LCSC_ID.match((component_id or "").strip().upper()))


class EasyEdaClient:
    """Thin requests.Session wrapper around the catalog endpoints."""

    DEFAULT_HEADERS = {
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
        "User-Agent": "lcscbridge (KiCad library importer)",
    }

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._session = None

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.DEFAULT_HEADERS)
        return self._session

    def fetch_component(self, component_id: str) -> dict:
        """Return the `result` object for an LCSC id or EasyEDA community uuid.

        Raises ComponentNotFoundError when the payload carries no result.
        Transport errors propagate as requests exceptions.
        """
        component_id = component_id.strip()
        if is_lcsc_id(component_id):
            url = COMPONENT_URL.format(lcsc_id=component_id.upper())
        else:
            url = COMMUNITY_COMPONENT_URL.format(uuid=component_id)

        response = self._get_session().get(url, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        result = data.get("result") if isinstance(data, dict) else None
        if not result:
            raise ComponentNotFoundError(f"Component {component_id} not found")
        return result

    def fetch_details(self, lcsc_id: str) -> dict | None:
        """JLCPCB part details used to enrich component info.

        Any failure is logged and returns None.
        """
        try:
            response = self._get_session().post(
                DETAILS_URL, json={"componentCode": lcsc_id}, timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Detail lookup failed for %s: %s", lcsc_id, e)
            return None

        if not isinstance(data, dict) or data.get("code") != 200 or not data.get("data"):
            logger.debug("No details for %s", lcsc_id)
            return None
        return parse_details(data["data"])

    def fetch_3d_model(self, uuid: str) -> bytes | None:
        """STEP model bytes, or None when the download fails."""
        try:
            response = self._get_session().get(
                MODEL_STEP_URL.format(uuid=uuid), timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("3D model download failed for %s: %s", uuid, e)
            return None
        return response.content or None


def parse_details(component: dict) -> dict:
    """Reduce a JLCPCB detail record to the fields merged into ComponentInfo."""
    attributes = {}
    for attr in component.get("attributes") or []:
        if not isinstance(attr, dict):
            continue
        name = attr.get("attribute_name_en") or attr.get("attributeNameEn")
        value = attr.get("attribute_value_name") or attr.get("attributeValueName")
        if name and value and value != "-":
            attributes[str(name)] = str(value)
    return {
        "name": component.get("componentModelEn") or "",
        "description": component.get("describe") or "",
        "datasheet_pdf": component.get("dataManualUrl") or None,
        "attributes": attributes,
    }


_default_client: EasyEdaClient | None = None


def _client() -> EasyEdaClient:
    global _default_client
    if _default_client is None:
        _default_client = EasyEdaClient()
    return _default_client


def fetch_component(component_id: str) -> dict:
    return _client().fetch_component(component_id)


def fetch_details(lcsc_id: str) -> dict | None:
    return _client().fetch_details(lcsc_id)


def fetch_3d_model(uuid: str) -> bytes | None:
    return _client().fetch_3d_model(uuid)
