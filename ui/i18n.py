from __future__ import annotations

from typing import Any


DEFAULT_LANGUAGE = "it"
LANGUAGES = ("it", "en")

_current = DEFAULT_LANGUAGE

_STRINGS: dict[str, dict[str, str]] = {
    "it": {
        # Application
        "app_title": "Preventivi",
        "quotes": "Preventivi",
        "trash": "Cestino",
        "settings": "Impostazioni",
        "logout": "Esci",
        "login": "Accedi",
        "username": "Utente",
        "password": "Password",
        "login_failed": "Nome utente o password non validi.",
        "error": "Errore",
        "warning": "Attenzione",
        "info": "Informazione",
        "confirm": "Conferma",
        "save": "Salva",
        "cancel": "Annulla",
        "close": "Chiudi",
        "new": "Nuovo",
        "edit": "Modifica",
        "delete": "Elimina",
        "add": "Aggiungi",
        "remove": "Rimuovi",
        "browse": "Sfoglia...",
        "clear": "Svuota",
        "move_up": "Su",
        "move_down": "Giù",
        "search": "Cerca",
        "search_quotes": "Cerca per cliente o numero...",
        "loading": "Caricamento in corso...",
        "saved": "Salvato",
        "yes": "Sì",
        "no": "No",
        # Quotes list
        "new_quote": "Nuovo preventivo",
        "edit_quote": "Modifica preventivo",
        "export_pdf": "Esporta PDF",
        "export_xlsx": "Esporta Excel",
        "preview": "Anteprima",
        "move_to_trash": "Sposta nel cestino",
        "confirm_trash": "Spostare il preventivo {number} nel cestino?",
        "select_quote": "Seleziona un preventivo.",
        "exported_to": "Esportato in {path}",
        "quote_not_found": "Preventivo non trovato.",
        # Trash
        "restore": "Ripristina",
        "delete_permanently": "Elimina definitivamente",
        "confirm_delete_permanently": "Eliminare definitivamente il preventivo {number}?",
        "deleted_at": "Eliminato il",
        "trash_hint": "I preventivi nel cestino vengono eliminati dopo {days} giorni.",
        "purged": "{count} preventivi scaduti eliminati dal cestino.",
        # Quote editor
        "tab_header": "Intestazione",
        "tab_lines": "Righe",
        "tab_leasing": "Leasing",
        "tab_sections": "Sezioni",
        "tab_attachments": "Allegati",
        "tab_preview": "Anteprima",
        "number": "Numero",
        "number_auto": "Automatico ({number})",
        "date": "Data",
        "customer": "Cliente",
        "customer_name": "Ragione sociale",
        "customer_address": "Indirizzo",
        "customer_vat": "P.IVA/CF",
        "pick_customer": "Da anagrafica...",
        "notes": "Note",
        "code": "Codice",
        "description": "Descrizione",
        "quantity": "Q.tà",
        "unit_price": "Prezzo",
        "vat_rate": "IVA %",
        "total": "Totale",
        "subtotal": "Imponibile",
        "vat": "IVA",
        "add_line": "Aggiungi riga",
        "add_article": "Da catalogo...",
        "remove_line": "Rimuovi riga",
        "pick_article": "Seleziona articolo",
        "show_totals": "Mostra totali",
        "show_bank_info": "Mostra coordinate bancarie",
        "leasing_enabled": "Aggiungi leasing/finanziamento",
        "leasing_kind": "Tipo",
        "asset_value": "Importo bene / Imponibile",
        "leasing_vat_rate": "Aliquota IVA (%)",
        "vat_amount": "Importo IVA",
        "total_vat_incl": "Totale bene IVA inclusa",
        "down_payment_value": "Anticipo / Maxicanone (€)",
        "down_payment_percent": "Anticipo (%)",
        "net_financed_capital": "Capitale finanziato netto",
        "duration_months": "Durata (mesi)",
        "installment_count": "Numero canoni",
        "periodicity": "Periodicità",
        "installment_amount": "Importo canone",
        "start_date": "Data decorrenza",
        "first_installment_date": "Data 1° canone",
        "toc_text": "Testo sopra l'indice",
        "toc_text_below": "Testo sotto l'indice",
        "premise_text": "Premessa",
        "hardware_images": "Immagini hardware",
        "software_text": "Testo software",
        "software_images": "Immagini software",
        "target_images": "Immagini destinatari",
        "product_text": "Descrizione prodotti",
        "product_images": "Immagini prodotti",
        "caption": "Didascalia",
        "caption_from_line": "Didascalia da riga...",
        "image_count": "Numero immagini",
        "image_height": "Altezza immagine",
        "image_scale": "Scala (%)",
        "image_max_height": "Altezza massima",
        "image_fit": "Adattamento",
        "fit_contain": "Contenuta",
        "fit_cover": "Riempi",
        "supply_conditions": "Condizioni di fornitura (una per riga)",
        "attachments_position": "Posizione allegati",
        "position_before": "Prima dell'offerta",
        "position_after": "Dopo l'offerta",
        "attachment_title": "Titolo",
        "attachment_image": "Immagine",
        "image_position": "Posizione immagine",
        "pos_top": "Sopra",
        "pos_bottom": "Sotto",
        "pos_left": "Sinistra",
        "pos_right": "Destra",
        "font_size": "Dimensione testo",
        "text_color": "Colore testo",
        "show_title": "Mostra titolo",
        "full_page_image": "Immagine a pagina intera",
        "select_image": "Seleziona immagine",
        "image_files": "Immagini (*.png *.jpg *.jpeg *.gif *.bmp)",
        "invalid_image": "Il file selezionato non è un'immagine.",
        "customer_required": "Il nome del cliente è obbligatorio.",
        "line_description_required": "La riga {row} non ha una descrizione.",
        "save_failed": "Salvataggio non riuscito: {error}",
        "reference_data_failed": "Impossibile caricare i dati di riferimento: {error}",
        "export_failed": "Esportazione non riuscita: {error}",
        "quote_saved": "Preventivo {number} salvato.",
        # Settings view
        "company_data": "Dati azienda",
        "company_name": "Ragione sociale",
        "company_address": "Indirizzo",
        "company_vat": "P.IVA",
        "company_email": "Email",
        "company_phone": "Telefono",
        "bank_info": "Coordinate bancarie",
        "logo": "Logo",
        "logo_url": "URL logo",
        "signature": "Firma",
        "signature_scale": "Scala firma (%)",
        "numbering": "Numerazione",
        "quote_number_prefix": "Prefisso",
        "next_quote_number": "Prossimo numero",
        "reconcile_counter": "Riallinea contatore",
        "counter_reconciled": "Prossimo numero: {number}",
        "default_vat": "IVA predefinita (%)",
        "defaults": "Predefiniti documento",
        "default_hardware_image": "Immagine hardware",
        "default_software_image": "Immagine software",
        "default_target_image": "Immagine destinatari",
        "contract_pages_text": "Condizioni contrattuali (pagine separate da ---)",
        "appearance": "Aspetto",
        "theme": "Tema",
        "theme_light": "Chiaro",
        "theme_dark": "Scuro",
        "language": "Lingua",
        "restart_required": "Riavvia l'applicazione per applicare la lingua.",
        "settings_saved": "Impostazioni salvate.",
        # Document
        "doc_quote": "Preventivo",
        "doc_index": "Indice",
        "doc_premise": "Premessa",
        "doc_software": "Software",
        "doc_target": "A chi è rivolto",
        "doc_products": "Descrizione Prodotti",
        "doc_offer": "Offerta Economica",
        "doc_conditions": "Condizioni",
        "doc_contract": "Condizioni Contrattuali",
        "doc_attachments": "Allegati",
        "doc_recipient": "DESTINATARIO",
        "doc_number": "N. {number}",
        "doc_date": "Data: {date}",
        "doc_vat_id": "P.IVA: {vat}",
        "doc_customer_vat": "P.IVA/CF: {vat}",
        "doc_code": "CODICE",
        "doc_description": "DESCRIZIONE",
        "doc_quantity": "Q.TÀ",
        "doc_price": "PREZZO",
        "doc_total": "TOTALE",
        "doc_subtotal": "Imponibile",
        "doc_vat": "IVA",
        "doc_grand_total": "TOTALE",
        "doc_bank_info": "Coordinate Bancarie:",
        "doc_notes": "Note",
        "doc_economic_parameters": "Parametri economici",
        "doc_installments": "Durata e canoni",
        "doc_months": "{count} mesi",
        "doc_place_date": "Data: {date}",
        "doc_company_signature": "Timbro e firma fornitore",
        "doc_customer_signature": "Timbro e firma cliente per accettazione",
        "doc_page": "Pagina {page} di {total}",
        # Shell
        "menu": "Menu",
        "logged_in_as": "Utente: {user}",
        "dashboard": "Dashboard",
        "section_dashboard": "Dashboard",
        "subtitle_dashboard": "Riepilogo dei preventivi e del catalogo",
        "welcome": "Bentornato, {user}",
        "stat_quotes": "Totale preventivi",
        "stat_value": "Fatturato potenziale",
        "stat_articles": "Articoli in catalogo",
        "recent_quotes": "Preventivi recenti",
        "section_quotes": "Preventivi",
        "subtitle_quotes": "Crea, modifica ed esporta i preventivi",
        "section_trash": "Cestino",
        "subtitle_trash": "Preventivi eliminati, ripristinabili per 30 giorni",
        "section_settings": "Impostazioni",
        "subtitle_settings": "Dati aziendali, numerazione e predefiniti del documento",
        "quote_count": "{count} preventivi",
        "preview_failed": "Anteprima non disponibile.",
        "lang_it": "Italiano",
        "lang_en": "English",
    },
    "en": {
        "app_title": "Quotes",
        "quotes": "Quotes",
        "trash": "Trash",
        "settings": "Settings",
        "logout": "Log out",
        "login": "Log in",
        "username": "Username",
        "password": "Password",
        "login_failed": "Invalid username or password.",
        "error": "Error",
        "warning": "Warning",
        "info": "Information",
        "confirm": "Confirm",
        "save": "Save",
        "cancel": "Cancel",
        "close": "Close",
        "new": "New",
        "edit": "Edit",
        "delete": "Delete",
        "add": "Add",
        "remove": "Remove",
        "browse": "Browse...",
        "clear": "Clear",
        "move_up": "Up",
        "move_down": "Down",
        "search": "Search",
        "search_quotes": "Search by customer or number...",
        "loading": "Loading...",
        "saved": "Saved",
        "yes": "Yes",
        "no": "No",
        "new_quote": "New quote",
        "edit_quote": "Edit quote",
        "export_pdf": "Export PDF",
        "export_xlsx": "Export Excel",
        "preview": "Preview",
        "move_to_trash": "Move to trash",
        "confirm_trash": "Move quote {number} to the trash?",
        "select_quote": "Select a quote.",
        "exported_to": "Exported to {path}",
        "quote_not_found": "Quote not found.",
        "restore": "Restore",
        "delete_permanently": "Delete permanently",
        "confirm_delete_permanently": "Permanently delete quote {number}?",
        "deleted_at": "Deleted on",
        "trash_hint": "Quotes in the trash are deleted after {days} days.",
        "purged": "{count} expired quotes removed from the trash.",
        "tab_header": "Header",
        "tab_lines": "Lines",
        "tab_leasing": "Leasing",
        "tab_sections": "Sections",
        "tab_attachments": "Attachments",
        "tab_preview": "Preview",
        "number": "Number",
        "number_auto": "Automatic ({number})",
        "date": "Date",
        "customer": "Customer",
        "customer_name": "Company name",
        "customer_address": "Address",
        "customer_vat": "VAT id",
        "pick_customer": "From customers...",
        "notes": "Notes",
        "code": "Code",
        "description": "Description",
        "quantity": "Qty",
        "unit_price": "Price",
        "vat_rate": "VAT %",
        "total": "Total",
        "subtotal": "Subtotal",
        "vat": "VAT",
        "add_line": "Add line",
        "add_article": "From catalog...",
        "remove_line": "Remove line",
        "pick_article": "Select article",
        "show_totals": "Show totals",
        "show_bank_info": "Show bank details",
        "leasing_enabled": "Add leasing/financing",
        "leasing_kind": "Type",
        "asset_value": "Asset value",
        "leasing_vat_rate": "VAT rate (%)",
        "vat_amount": "VAT amount",
        "total_vat_incl": "Total incl. VAT",
        "down_payment_value": "Down payment (€)",
        "down_payment_percent": "Down payment (%)",
        "net_financed_capital": "Net financed capital",
        "duration_months": "Duration (months)",
        "installment_count": "Installments",
        "periodicity": "Periodicity",
        "installment_amount": "Installment amount",
        "start_date": "Start date",
        "first_installment_date": "First installment",
        "toc_text": "Text above the index",
        "toc_text_below": "Text below the index",
        "premise_text": "Premise",
        "hardware_images": "Hardware images",
        "software_text": "Software text",
        "software_images": "Software images",
        "target_images": "Audience images",
        "product_text": "Product description",
        "product_images": "Product images",
        "caption": "Caption",
        "caption_from_line": "Caption from line...",
        "image_count": "Image count",
        "image_height": "Image height",
        "image_scale": "Scale (%)",
        "image_max_height": "Max height",
        "image_fit": "Fit",
        "fit_contain": "Contain",
        "fit_cover": "Cover",
        "supply_conditions": "Supply conditions (one per line)",
        "attachments_position": "Attachments position",
        "position_before": "Before the offer",
        "position_after": "After the offer",
        "attachment_title": "Title",
        "attachment_image": "Image",
        "image_position": "Image position",
        "pos_top": "Top",
        "pos_bottom": "Bottom",
        "pos_left": "Left",
        "pos_right": "Right",
        "font_size": "Font size",
        "text_color": "Text color",
        "show_title": "Show title",
        "full_page_image": "Full-page image",
        "select_image": "Select image",
        "image_files": "Images (*.png *.jpg *.jpeg *.gif *.bmp)",
        "invalid_image": "The selected file is not an image.",
        "customer_required": "Customer name is required.",
        "line_description_required": "Line {row} has no description.",
        "save_failed": "Save failed: {error}",
        "reference_data_failed": "Could not load reference data: {error}",
        "export_failed": "Export failed: {error}",
        "quote_saved": "Quote {number} saved.",
        "company_data": "Company data",
        "company_name": "Company name",
        "company_address": "Address",
        "company_vat": "VAT id",
        "company_email": "Email",
        "company_phone": "Phone",
        "bank_info": "Bank details",
        "logo": "Logo",
        "logo_url": "Logo URL",
        "signature": "Signature",
        "signature_scale": "Signature scale (%)",
        "numbering": "Numbering",
        "quote_number_prefix": "Prefix",
        "next_quote_number": "Next number",
        "reconcile_counter": "Reconcile counter",
        "counter_reconciled": "Next number: {number}",
        "default_vat": "Default VAT (%)",
        "defaults": "Document defaults",
        "default_hardware_image": "Hardware image",
        "default_software_image": "Software image",
        "default_target_image": "Audience image",
        "contract_pages_text": "Contract terms (pages separated by ---)",
        "appearance": "Appearance",
        "theme": "Theme",
        "theme_light": "Light",
        "theme_dark": "Dark",
        "language": "Language",
        "restart_required": "Restart the application to apply the language.",
        "settings_saved": "Settings saved.",
        "doc_quote": "Quote",
        "doc_index": "Contents",
        "doc_premise": "Introduction",
        "doc_software": "Software",
        "doc_target": "Who it is for",
        "doc_products": "Product Description",
        "doc_offer": "Economic Offer",
        "doc_conditions": "Conditions",
        "doc_contract": "Contract Terms",
        "doc_attachments": "Attachments",
        "doc_recipient": "RECIPIENT",
        "doc_number": "No. {number}",
        "doc_date": "Date: {date}",
        "doc_vat_id": "VAT: {vat}",
        "doc_customer_vat": "VAT id: {vat}",
        "doc_code": "CODE",
        "doc_description": "DESCRIPTION",
        "doc_quantity": "QTY",
        "doc_price": "PRICE",
        "doc_total": "TOTAL",
        "doc_subtotal": "Subtotal",
        "doc_vat": "VAT",
        "doc_grand_total": "TOTAL",
        "doc_bank_info": "Bank details:",
        "doc_notes": "Notes",
        "doc_economic_parameters": "Economic parameters",
        "doc_installments": "Duration and installments",
        "doc_months": "{count} months",
        "doc_place_date": "Date: {date}",
        "doc_company_signature": "Supplier signature",
        "doc_customer_signature": "Customer signature for acceptance",
        "doc_page": "Page {page} of {total}",
        # Shell
        "menu": "Menu",
        "logged_in_as": "User: {user}",
        "dashboard": "Dashboard",
        "section_dashboard": "Dashboard",
        "subtitle_dashboard": "Overview of quotes and catalog",
        "welcome": "Welcome back, {user}",
        "stat_quotes": "Total quotes",
        "stat_value": "Potential revenue",
        "stat_articles": "Catalog articles",
        "recent_quotes": "Recent quotes",
        "section_quotes": "Quotes",
        "subtitle_quotes": "Create, edit and export quotes",
        "section_trash": "Trash",
        "subtitle_trash": "Deleted quotes, restorable for 30 days",
        "section_settings": "Settings",
        "subtitle_settings": "Company data, numbering and document defaults",
        "quote_count": "{count} quotes",
        "preview_failed": "Preview not available.",
        "lang_it": "Italiano",
        "lang_en": "English",
    },
}


def set_language(language: str) -> None:
    global _current
    _current = language if language in _STRINGS else DEFAULT_LANGUAGE


def get_language() -> str:
    return _current


def t(key: str, **kwargs: Any) -> str:
    text = _STRINGS[_current].get(key) or _STRINGS[DEFAULT_LANGUAGE].get(key) or key
    if kwargs:
        return text.format(**kwargs)
    return text


def tu(key: str, **kwargs: Any) -> str:
    return t(key, **kwargs).upper()
