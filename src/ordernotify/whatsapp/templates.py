"""Localized WhatsApp message templates for order notifications.

Messages are assembled from labeled fragments grouped in blocks. Blocks are
separated by a blank line; optional fragments are dropped, never rendered as
empty lines. Text is rendered in memory at send time and never logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from ordernotify.domain.models import (
    DEFAULT_LOCALE,
    Locale,
    OrderNotificationRequest,
    OrderRecord,
    coerce_locale,
)
from ordernotify.domain.order_status import NotificationKind, OrderStatus, parse_status
from ordernotify.observability.logging import get_logger
from ordernotify.observability.redaction import safe_log_context

from .meta_sender import MAX_TEXT_BODY_LENGTH

logger = get_logger(__name__)

FRAGMENTS: dict[str, dict[str, str]] = {
    "es": {
        "title.pending": "🕐 *Orden Recibida - {store_name}*",
        "title.confirmed": "🎉 *¡Confirmación de Orden - {store_name}!*",
        "title.preparing": "👨‍🍳 *Preparando tu Orden - {store_name}*",
        "title.ready": "🎉 *¡Orden Lista! - {store_name}*",
        "title.completed": "⭐ *Orden Completada - {store_name}*",
        "title.cancelled": "❌ *Orden Cancelada - {store_name}*",
        "title.business_alert": "🆕 *Nueva Orden Recibida - {store_name}*",
        "order_number": "📋 *Orden #{order_id}*",
        "customer": "👤 Cliente: {customer_name}",
        "phone": "📱 Teléfono: {customer_phone}",
        "items_header": "📦 *Artículos Ordenados:*",
        "items_more": "… y {count} artículo(s) más",
        "total": "💰 *Total: {total}*",
        "payment": "💳 Método de pago: {payment_method}",
        "address": "📍 Dirección: {delivery_address}",
        "instructions": "📝 Instrucciones: {special_instructions}",
        "estimated_time": "🕐 Tiempo estimado: {estimated_time}",
        "pickup": "📍 Recoger en: {store_address}",
        "cancellation_reason": "Motivo: {cancellation_reason}",
        "status.pending": "🕐 *Tu orden está pendiente de confirmación.*",
        "status.confirmed": "✅ *Su orden ha sido confirmada y será procesada pronto.*",
        "status.preparing": "👨‍🍳 *Tu orden se está preparando.*",
        "status.ready": "🎉 *Tu orden está lista para recoger.*",
        "status.completed": "⭐ *Tu orden ha sido completada. ¡Esperamos que la hayas disfrutado!*",
        "status.cancelled": "❌ *Lamentamos informarte que tu orden ha sido cancelada.*",
        "status.business_alert": "*Responde a este mensaje para actualizar el estado de la orden.*",
        "status.unknown": "Tu orden tiene estado: {status}",
        "closing": "¡Gracias por elegirnos!\n🌟 {store_name}",
        "closing.cancelled": "Si tienes preguntas, contacta directamente a {store_name}.",
        "store_phone": "📞 {store_phone}",
        "eta.confirmed": "15-20 minutos",
        "eta.preparing": "10-15 minutos",
        "reply.store": "Tienda: {store_name}",
        "reply.no_recent_order": (
            "No encontramos órdenes recientes para este número. Si tienes alguna "
            "pregunta, puedes contactar directamente a la tienda."
        ),
        "reply.lookup_error": (
            "Disculpa, hubo un error al consultar tu orden. Por favor intenta más tarde."
        ),
        "reply.help": (
            "¡Hola! 👋\n\n"
            "Soy el asistente de pedidos. Te puedo ayudar con:\n\n"
            "• Estado de tu orden - escribe \"estado\" o \"pedido\"\n"
            "• Información de contacto de la tienda\n"
            "• Preguntas sobre entregas\n\n"
            "¿En qué puedo ayudarte?"
        ),
    },
    "en": {
        "title.pending": "🕐 *Order Received - {store_name}*",
        "title.confirmed": "🎉 *Order Confirmation - {store_name}!*",
        "title.preparing": "👨‍🍳 *Preparing Your Order - {store_name}*",
        "title.ready": "🎉 *Order Ready! - {store_name}*",
        "title.completed": "⭐ *Order Completed - {store_name}*",
        "title.cancelled": "❌ *Order Cancelled - {store_name}*",
        "title.business_alert": "🆕 *New Order Received - {store_name}*",
        "order_number": "📋 *Order #{order_id}*",
        "customer": "👤 Customer: {customer_name}",
        "phone": "📱 Phone: {customer_phone}",
        "items_header": "📦 *Items Ordered:*",
        "items_more": "… and {count} more item(s)",
        "total": "💰 *Total: {total}*",
        "payment": "💳 Payment method: {payment_method}",
        "address": "📍 Address: {delivery_address}",
        "instructions": "📝 Instructions: {special_instructions}",
        "estimated_time": "🕐 Estimated time: {estimated_time}",
        "pickup": "📍 Pick up at: {store_address}",
        "cancellation_reason": "Reason: {cancellation_reason}",
        "status.pending": "🕐 *Your order is pending confirmation.*",
        "status.confirmed": "✅ *Your order has been confirmed and will be processed soon.*",
        "status.preparing": "👨‍🍳 *Your order is being prepared.*",
        "status.ready": "🎉 *Your order is ready for pickup.*",
        "status.completed": "⭐ *Your order has been completed. We hope you enjoyed it!*",
        "status.cancelled": "❌ *We're sorry to inform you that your order has been cancelled.*",
        "status.business_alert": "*Reply to this message to update the order status.*",
        "status.unknown": "Your order has status: {status}",
        "closing": "Thank you for choosing us!\n🌟 {store_name}",
        "closing.cancelled": "If you have questions, please contact {store_name} directly.",
        "store_phone": "📞 {store_phone}",
        "eta.confirmed": "15-20 minutes",
        "eta.preparing": "10-15 minutes",
        "reply.store": "Store: {store_name}",
        "reply.no_recent_order": (
            "We couldn't find recent orders for this number. If you have any "
            "questions, please contact the store directly."
        ),
        "reply.lookup_error": (
            "Sorry, something went wrong while looking up your order. Please try again later."
        ),
        "reply.help": (
            "Hello! 👋\n\n"
            "I'm the order assistant. I can help you with:\n\n"
            "• Order status - type \"status\" or \"order\"\n"
            "• Store contact information\n"
            "• Delivery questions\n\n"
            "How can I help you?"
        ),
    },
}

# Automated replies to customers who did not get a notification in their own
# language yet default to Spanish.
REPLY_DEFAULT_LOCALE: Locale = "es"


@dataclass(frozen=True)
class RenderResult:
    text: str
    truncated: bool = False


def format_money(amount: Decimal | float | int | str, currency: str) -> str:
    """Two decimals plus the currency code, e.g. ``$100.00 MXN``."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${value:.2f} {currency.upper()}"


def _fragment(locale: Locale, key: str, **params: Any) -> str:
    table = FRAGMENTS.get(locale) or FRAGMENTS[DEFAULT_LOCALE]
    return table[key].format(**params)


def _join_blocks(blocks: Iterable[list[str]]) -> str:
    return "\n\n".join("\n".join(block) for block in blocks if block)


def format_item_lines(order: OrderNotificationRequest) -> list[str]:
    """``• <name> x<qty> - <unit price>`` per item, in order."""
    return [
        f"• {item.name} x{item.quantity} - {format_money(item.price, order.currency)}"
        for item in order.items
    ]


def _title_key(kind: NotificationKind, status: OrderStatus) -> str:
    if kind is NotificationKind.BUSINESS_ALERT:
        return "title.business_alert"
    return f"title.{status.value}"


def _status_key(kind: NotificationKind, status: OrderStatus) -> str:
    if kind is NotificationKind.BUSINESS_ALERT:
        return "status.business_alert"
    return f"status.{status.value}"


def _details_block(
    locale: Locale, kind: NotificationKind, order: OrderNotificationRequest
) -> list[str]:
    lines = []
    if order.delivery_address:
        lines.append(_fragment(locale, "address", delivery_address=order.delivery_address))
    if order.special_instructions:
        lines.append(
            _fragment(locale, "instructions", special_instructions=order.special_instructions)
        )
    if kind is NotificationKind.BUSINESS_ALERT:
        return lines

    status = order.status
    eta = order.estimated_time
    if eta is None and status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING):
        eta = _fragment(locale, f"eta.{status.value}")
    if eta and status in (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING):
        lines.append(_fragment(locale, "estimated_time", estimated_time=eta))
    if status is OrderStatus.READY and order.store_address:
        lines.append(_fragment(locale, "pickup", store_address=order.store_address))
    if status is OrderStatus.CANCELLED and order.cancellation_reason:
        lines.append(
            _fragment(locale, "cancellation_reason", cancellation_reason=order.cancellation_reason)
        )
    return lines


def _closing_block(
    locale: Locale, kind: NotificationKind, order: OrderNotificationRequest
) -> list[str]:
    if kind is NotificationKind.BUSINESS_ALERT:
        return []
    if order.status is OrderStatus.CANCELLED:
        lines = [_fragment(locale, "closing.cancelled", store_name=order.store_name)]
        if order.store_phone:
            lines.append(_fragment(locale, "store_phone", store_phone=order.store_phone))
        return lines
    return [_fragment(locale, "closing", store_name=order.store_name)]


def render(
    locale: str | None,
    order: OrderNotificationRequest,
    kind: NotificationKind = NotificationKind.CONFIRMATION,
    *,
    max_length: int = MAX_TEXT_BODY_LENGTH,
) -> RenderResult:
    """Render an order notification body.

    Args:
        locale: "es" or "en"; anything else falls back to "en".
        order: Validated order data. ``customer_phone`` is printed as given.
        kind: Customer confirmation/status update, or the store's new-order
            alert.
        max_length: Provider body limit.

    Returns:
        RenderResult. ``truncated`` is True when item lines were dropped to
        fit ``max_length``; header, totals and footer are kept whole.
    """
    loc = coerce_locale(locale)
    status = order.status

    header = [
        _fragment(loc, _title_key(kind, status), store_name=order.store_name),
        "",
        _fragment(loc, "order_number", order_id=order.order_id),
        _fragment(loc, "customer", customer_name=order.customer_name),
        _fragment(loc, "phone", customer_phone=order.customer_phone),
    ]
    totals = [
        _fragment(loc, "total", total=format_money(order.total_amount, order.currency)),
        _fragment(loc, "payment", payment_method=order.payment_method),
    ]
    details = _details_block(loc, kind, order)
    status_block = [_fragment(loc, _status_key(kind, status))]
    closing = _closing_block(loc, kind, order)

    item_lines = format_item_lines(order)

    def assemble(kept: int) -> str:
        items_block = [_fragment(loc, "items_header"), *item_lines[:kept]]
        dropped = len(item_lines) - kept
        if dropped:
            items_block.append(_fragment(loc, "items_more", count=dropped))
        return _join_blocks([header, items_block, totals, details, status_block, closing])

    text = assemble(len(item_lines))
    if len(text) <= max_length:
        return RenderResult(text=text)

    kept = len(item_lines)
    while kept > 0 and len(text) > max_length:
        kept -= 1
        text = assemble(kept)

    if len(text) > max_length:
        text = text[:max_length]

    logger.warning(
        "message truncated to provider limit",
        extra={
            "extra_fields": safe_log_context(
                kind=kind.value,
                locale=loc,
                items_total=len(item_lines),
                items_kept=kept,
                max_length=max_length,
            )
        },
    )
    return RenderResult(text=text, truncated=True)


def render_status_reply(order: OrderRecord) -> str:
    """Short status answer for a customer asking about their latest order.

    Unknown legacy status strings get a generic line instead of failing.
    """
    loc = coerce_locale(order.language)
    status = parse_status(order.status)
    if status is None:
        status_line = _fragment(loc, "status.unknown", status=order.status)
    else:
        status_line = _fragment(loc, f"status.{status.value}")

    first = [_fragment(loc, "order_number", order_id=order.id), status_line]
    second = [_fragment(loc, "total", total=format_money(order.total_amount, order.currency))]
    if order.store_name:
        second.append(_fragment(loc, "reply.store", store_name=order.store_name))
    if status is OrderStatus.READY and order.store_address:
        second.append(_fragment(loc, "pickup", store_address=order.store_address))
    return _join_blocks([first, second])


def render_help_reply(locale: str | None = REPLY_DEFAULT_LOCALE) -> str:
    return _fragment(coerce_locale(locale, REPLY_DEFAULT_LOCALE), "reply.help")


def render_no_recent_order(locale: str | None = REPLY_DEFAULT_LOCALE) -> str:
    return _fragment(coerce_locale(locale, REPLY_DEFAULT_LOCALE), "reply.no_recent_order")


def render_lookup_error(locale: str | None = REPLY_DEFAULT_LOCALE) -> str:
    return _fragment(coerce_locale(locale, REPLY_DEFAULT_LOCALE), "reply.lookup_error")
