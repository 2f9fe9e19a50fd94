from __future__ import annotations

from datetime import date
from typing import Optional

import pandas as pd
import streamlit as st

from acordos.bulk import SelectionMode
from acordos.classifier import ViewFilter, badge, days_late
from acordos.config import settings, setup_logging
from acordos.errors import AcordosError, InvalidPhoneError
from acordos.export import to_csv_text, to_xlsx_bytes
from acordos.loader import ALL_FORMATS, load_workbook_bytes
from acordos.messaging import due_reminder_link, format_brl, promise_reminder, promise_reminder_link
from acordos.promises import PromiseView
from acordos.records import ClientRecord
from acordos.shared import format_br_date
from acordos.workspace import Workspace

FILTER_LABELS = {
    ViewFilter.ALL: "Todos",
    ViewFilter.DUE_TODAY: "Vence hoje",
    ViewFilter.OVERDUE: "Atrasados",
    ViewFilter.PAID: "Pagos",
    ViewFilter.PENDING: "Pendentes",
}
BULK_LABELS = {
    SelectionMode.DUE_TODAY: "Vence hoje",
    SelectionMode.BREACH: "Quebras (6+ dias)",
    SelectionMode.LATE_1_5: "Atrasados 1-5 dias",
}
PROMISE_VIEW_LABELS = {
    PromiseView.ALL: "Todas",
    PromiseView.TODAY: "Hoje",
    PromiseView.EXPIRED: "Vencidas",
    PromiseView.NEXT_7: "Próximos 7 dias",
}
BADGE_TEXT = {"paid": "PAGO", "overdue": "ATRASADO", "due_today": "HOJE", "neutral": ""}


def ensure_state() -> None:
    if "workspace" not in st.session_state:
        st.session_state["workspace"] = Workspace(settings.state_dir)
    st.session_state.setdefault("upload_signature", None)
    st.session_state.setdefault("flash", [])


def workspace() -> Workspace:
    return st.session_state["workspace"]


def flash(kind: str, message: str) -> None:
    st.session_state["flash"].append((kind, message))


def render_flash() -> None:
    for kind, message in st.session_state["flash"]:
        getattr(st, kind)(message)
    st.session_state["flash"] = []


def warn_if_unsaved(ws: Workspace) -> None:
    if not ws.last_persist_ok:
        flash("warning", "Não foi possível salvar no disco; a alteração vale só para esta sessão.")


def client_frame(records: list[ClientRecord], today: date) -> pd.DataFrame:
    rows = []
    for record in records:
        status = BADGE_TEXT[badge(record, today)]
        if status == "ATRASADO":
            status = f"ATRASADO ({days_late(record, today)}d)"
        try:
            link = due_reminder_link(record)
        except InvalidPhoneError:
            link = None
        rows.append(
            {
                "CPF": record.national_id,
                "Nome": record.name,
                "Valor": format_brl(record.amount),
                "Vencimento": format_br_date(record.due_date),
                "Situação": status,
                "Telefone": record.phone,
                "Status": record.status,
                "Promessa": format_br_date(record.promise_date),
                "Origem": record.source,
                "WhatsApp": link,
            }
        )
    return pd.DataFrame(rows)


def render_upload(ws: Workspace) -> None:
    upload = st.file_uploader(
        "Planilha de acordos",
        type=[ext.lstrip(".") for ext in sorted(ALL_FORMATS)],
        key="upload_input",
    )
    if upload is None:
        return

    signature = (upload.name, upload.size)
    if st.session_state["upload_signature"] != signature:
        try:
            workbook = load_workbook_bytes(upload.getvalue(), upload.name)
            result = ws.load_workbook(workbook)
        except AcordosError as exc:
            st.error(str(exc))
            return
        st.session_state["upload_signature"] = signature
        for warning in result.warnings:
            flash("warning", warning)

    if ws.workbook is not None and len(ws.workbook.sheet_names) > 1:
        current = ws.workbook.sheet_names.index(ws.sheet_name) if ws.sheet_name in ws.workbook.sheet_names else 0
        chosen = st.selectbox("Aba", ws.workbook.sheet_names, index=current)
        if chosen != ws.sheet_name:
            ws.select_sheet(chosen)
            st.rerun()


def render_dashboard(ws: Workspace, today: date) -> None:
    stats = ws.summary(today)
    cols = st.columns(5)
    cols[0].metric("Clientes", stats.total)
    cols[1].metric("Pendentes", stats.pending)
    cols[2].metric("Pagos", stats.paid)
    cols[3].metric("Vence hoje", stats.due_today)
    cols[4].metric("Atrasados", stats.overdue)

    upcoming = pd.DataFrame(
        [{"Dia": format_br_date(day), "Vencimentos": count} for day, count in ws.upcoming(today)]
    )
    st.bar_chart(upcoming, x="Dia", y="Vencimentos")


def render_clients(ws: Workspace, today: date) -> tuple[ViewFilter, str]:
    left, right = st.columns([1, 2])
    view_filter = left.selectbox(
        "Filtro",
        list(FILTER_LABELS),
        format_func=lambda item: FILTER_LABELS[item],
        key="filter_input",
    )
    query = right.text_input("Buscar por CPF, nome ou telefone", key="query_input")
    records = ws.view(view_filter, query, today=today)
    st.caption(f"{len(records)} de {len(ws.records)} cliente(s)")
    if records:
        st.dataframe(
            client_frame(records, today),
            width="stretch",
            hide_index=True,
            column_config={"WhatsApp": st.column_config.LinkColumn("WhatsApp", display_text="Abrir")},
        )
    return view_filter, query


def render_bulk(ws: Workspace, view_filter: ViewFilter, query: str, today: date) -> None:
    st.subheader("Disparo em massa")
    cols = st.columns(len(BULK_LABELS))
    for col, (mode, label) in zip(cols, BULK_LABELS.items()):
        phones = ws.bulk_phones(mode, view_filter, query, today=today)
        with col:
            st.caption(f"{label}: {len(phones)}")
            st.code("\n".join(phones) or "-", language=None)


def render_manual_form(ws: Workspace) -> None:
    with st.expander("Novo cliente manual"):
        with st.form("manual_client_form", clear_on_submit=True):
            national_id = st.text_input("CPF")
            name = st.text_input("Nome")
            phone = st.text_input("Telefone")
            amount = st.text_input("Valor")
            due: Optional[date] = st.date_input("Vencimento", value=None, format="DD/MM/YYYY")
            submitted = st.form_submit_button("Salvar")
        if submitted:
            try:
                ws.add_manual_client(name=name, phone=phone, due_date=due, national_id=national_id, amount=amount)
            except AcordosError as exc:
                st.error(str(exc))
            else:
                flash("success", "Cliente salvo.")
                warn_if_unsaved(ws)
                st.rerun()

        if ws.manual_clients and st.button("Apagar todos os clientes manuais"):
            ws.clear_manual_clients()
            flash("success", "Clientes manuais apagados.")
            warn_if_unsaved(ws)
            st.rerun()


def render_promise_form(ws: Workspace, today: date) -> None:
    with st.expander("Promessa de pagamento"):
        candidates = [record for record in ws.records if record.name or record.phone or record.national_id]
        options = [None] + candidates
        chosen = st.selectbox(
            "Cliente",
            options,
            format_func=lambda record: "Outro (preencher manualmente)" if record is None else f"{record.name} - {record.phone}",
            key="promise_client_input",
        )
        draft = ws.promise_draft(chosen) if chosen is not None else None
        with st.form("promise_form", clear_on_submit=True):
            name = st.text_input("Nome", value=draft.name if draft else "")
            phone = st.text_input("Telefone", value=draft.phone if draft else "")
            national_id = st.text_input("CPF", value=draft.national_id if draft else "")
            amount = st.text_input("Valor", value=str(draft.amount) if draft else "")
            promised = st.date_input(
                "Data prometida",
                value=draft.promise_date if draft else None,
                format="DD/MM/YYYY",
            )
            note = st.text_input("Observação", value=draft.note if draft else "")
            submitted = st.form_submit_button("Salvar promessa")
        if submitted:
            try:
                ws.set_promise(
                    key=draft.key if draft else None,
                    promise_date=promised,
                    name=name,
                    phone=phone,
                    national_id=national_id,
                    amount=amount,
                    note=note,
                )
            except AcordosError as exc:
                st.error(str(exc))
            else:
                flash("success", "Promessa salva.")
                warn_if_unsaved(ws)
                st.rerun()


def render_promises(ws: Workspace, today: date) -> None:
    st.subheader("Promessas")
    counts = ws.promise_counts(today)
    view = st.radio(
        "Visão",
        list(PROMISE_VIEW_LABELS),
        format_func=lambda item: PROMISE_VIEW_LABELS[item],
        horizontal=True,
        key="promise_view_input",
    )
    st.caption(
        f"Total {counts['total']} • hoje {counts['today']} • vencidas {counts['expired']} • próximos 7 dias {counts['next_7']}"
    )
    for entry in ws.promise_entries(view, today=today):
        snapshot = entry.payload.snapshot
        cols = st.columns([2, 3, 2, 2, 1])
        cols[0].write(format_br_date(entry.payload.promise_date))
        cols[1].write(snapshot.name or "-")
        cols[2].write(format_brl(snapshot.amount) or "-")
        try:
            cols[3].link_button("WhatsApp", promise_reminder_link(entry.payload))
        except InvalidPhoneError:
            cols[3].caption(promise_reminder(entry.payload))
        if cols[4].button("Remover", key=f"remove_{entry.key}"):
            ws.remove_promise(entry.key)
            warn_if_unsaved(ws)
            st.rerun()


def render_exports(ws: Workspace) -> None:
    if not ws.records:
        return
    rows = ws.export_rows()
    left, right = st.columns(2)
    left.download_button(
        "Exportar CSV",
        data=to_csv_text(rows).encode("utf-8"),
        file_name="clientes_atualizado.csv",
        mime="text/csv",
        width="stretch",
    )
    right.download_button(
        "Exportar XLSX",
        data=to_xlsx_bytes(rows),
        file_name="clientes_atualizado.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        width="stretch",
    )


def main() -> None:
    st.set_page_config(page_title="acordos", layout="wide")
    setup_logging(settings.log_level)
    ensure_state()

    ws = workspace()
    today = settings.today()

    st.title("acordos")
    st.caption("Importe a planilha de acordos, acompanhe vencimentos e promessas e gere listas de disparo.")
    render_flash()

    render_upload(ws)
    render_dashboard(ws, today)
    view_filter, query = render_clients(ws, today)
    render_bulk(ws, view_filter, query, today)
    render_manual_form(ws)
    render_promise_form(ws, today)
    render_promises(ws, today)
    render_exports(ws)


if __name__ == "__main__":
    main()
