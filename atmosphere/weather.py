# ABOUTME: Weather panel built from the InfoClimat GFS XML forecast and a fixed XSLT stylesheet.
# ABOUTME: Every failure degrades to an inline error fragment; DTD validation is advisory only.

import logging
from functools import lru_cache
from pathlib import Path

import httpx
from lxml import etree
from markupsafe import Markup

logger = logging.getLogger(__name__)

INFOCLIMAT_URL = "https://www.infoclimat.fr/public-api/gfs/xml"
WEATHER_TIMEOUT = 10.0

XSL_DIR = Path(__file__).parent / "xsl"
STYLESHEET_PATH = XSL_DIR / "meteo.xsl"
DTD_PATH = XSL_DIR / "meteo.dtd"

_ERROR_FRAGMENT = Markup("<div class='error'>\n    <p>⚠️ {}</p>\n    <p><small>{}</small></p>\n</div>")


@lru_cache(maxsize=1)
def load_stylesheet() -> etree.XSLT:
    return etree.XSLT(etree.parse(str(STYLESHEET_PATH)))


@lru_cache(maxsize=1)
def load_dtd() -> etree.DTD:
    return etree.DTD(str(DTD_PATH))


def error_fragment(title: str, detail: str = "") -> Markup:
    """Inline error shown in place of the weather cards."""
    if not detail:
        return Markup("<p class='error'>⚠️ {}</p>").format(title)
    return _ERROR_FRAGMENT.format(title, detail)


async def get_weather_html(
    client: httpx.AsyncClient,
    latitude: float,
    longitude: float,
    auth: str,
    c: str,
) -> Markup:
    """Fetch the forecast for a point and render it as an HTML fragment. Never raises."""
    if not auth:
        return error_fragment("Météo indisponible", "Clé InfoClimat non configurée")

    try:
        resp = await client.get(
            INFOCLIMAT_URL,
            params={"_ll": f"{latitude},{longitude}", "_auth": auth, "_c": c},
            timeout=WEATHER_TIMEOUT,
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        # The credentials travel in the query string, so the URL never reaches the page or the log
        logger.warning("InfoClimat answered HTTP %d", e.response.status_code)
        return error_fragment("Impossible de récupérer les données météo", f"HTTP {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.warning("InfoClimat request failed: %s", type(e).__name__)
        return error_fragment("Impossible de récupérer les données météo", str(e) or "Connexion à l'API échouée")

    return render_forecast(resp.content)


def render_forecast(xml_bytes: bytes) -> Markup:
    """Validate and transform an InfoClimat XML document into the weather cards."""
    if b"<?xml" not in xml_bytes[:200]:
        snippet = xml_bytes[:200].decode("utf-8", errors="replace")
        return error_fragment("La réponse de l'API n'est pas du XML valide", f"Réponse reçue : {snippet}...")

    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
    try:
        document = etree.fromstring(xml_bytes, parser)
    except etree.XMLSyntaxError as e:
        logger.warning("InfoClimat returned unparsable XML: %s", e)
        return error_fragment("Erreur lors du parsing XML")

    state = document.findtext("request_state")
    if state is not None and state.strip() != "200":
        message = document.findtext("message") or f"request_state {state}"
        return error_fragment("Prévisions indisponibles", message.strip())

    diagnostics = validation_comments(document)

    try:
        result = str(load_stylesheet()(document))
    except (etree.XSLTError, OSError) as e:
        logger.exception("Weather transform failed")
        return error_fragment(f"Erreur lors du traitement météo : {e}")

    if not result.strip():
        return error_fragment("La transformation XSL n'a produit aucun résultat")
    return Markup(diagnostics + result)


def validation_comments(document: etree._Element) -> str:
    """Check the forecast against the DTD and report the outcome as HTML comments.

    A non-conforming document is still transformed.
    """
    try:
        dtd = load_dtd()
    except (etree.DTDParseError, OSError) as e:
        logger.warning("Could not load %s: %s", DTD_PATH.name, e)
        return ""

    if dtd.validate(document):
        return f"<!-- XML validé avec succès contre {DTD_PATH.name} -->\n"

    lines = ["<!-- Avertissement : XML non conforme au DTD (transformation continue) -->"]
    for entry in dtd.error_log.filter_from_errors():
        message = entry.message.replace("--", "- -")
        lines.append(f"<!-- Erreur DTD ligne {entry.line}: {message.strip()} -->")
    logger.warning("Forecast does not match %s (%d errors)", DTD_PATH.name, len(lines) - 1)
    return "\n".join(lines) + "\n"
