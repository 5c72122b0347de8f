SUPPORTED_LANGS = ["sw", "en"]
DEFAULT_LANG = "sw"

MESSAGES = {
    # ── Main menu ──────────────────────────────────────────
    "MENU_TITLE": {
        "sw": "Karibu Ujani 🌿",
        "en": "Welcome to Ujani 🌿",
    },
    "MENU_HEADER": {
        "sw": "Chagua bidhaa au huduma hapa chini 👇",
        "en": "Choose a product or an action below 👇",
    },
    "MENU_PRODUCTS_SECTION": {"sw": "Bidhaa", "en": "Products"},
    "MENU_ACTIONS_SECTION": {"sw": "Huduma", "en": "Actions"},
    "MENU_VIEW_CART": {"sw": "🧺 Angalia kikapu", "en": "🧺 View cart"},
    "MENU_CHECKOUT": {"sw": "✅ Kamilisha oda", "en": "✅ Checkout"},
    "MENU_TRACK": {"sw": "📦 Fuatilia oda", "en": "📦 Track my order"},
    "MENU_FAQ": {"sw": "❓ Maswali", "en": "❓ FAQ"},
    "MENU_TALK_TO_AGENT": {"sw": "💬 Ongea na wakala", "en": "💬 Talk to an agent"},
    # Rendered in the *other* language so the customer can read it.
    "MENU_CHANGE_LANGUAGE": {"sw": "🌐 Tumia Kiswahili", "en": "🌐 Use English"},
    "GENERIC_OPEN": {"sw": "Fungua", "en": "Open"},
    "GENERIC_CHOOSE": {"sw": "Chagua", "en": "Choose"},
    "GENERIC_BACK": {"sw": "🔙 Rudi menyu", "en": "🔙 Back to menu"},

    # ── Products ───────────────────────────────────────────
    "PRODUCT_ACTIONS_BODY": {
        "sw": "*{name}*\nBei: TZS {price}\n\nChagua hatua:",
        "en": "*{name}*\nPrice: TZS {price}\n\nChoose an action:",
    },
    "PRODUCT_ADD": {"sw": "🛒 Weka kikapuni", "en": "🛒 Add to cart"},
    "PRODUCT_BUY": {"sw": "⚡ Nunua sasa", "en": "⚡ Buy now"},
    "PRODUCT_DETAILS": {"sw": "ℹ️ Maelezo zaidi", "en": "ℹ️ More details"},
    "PRODUCT_VARIANTS": {"sw": "🔀 Chagua aina", "en": "🔀 Choose variant"},
    "PRODUCT_VARIANTS_BODY": {
        "sw": "Chagua aina ya *{name}*:",
        "en": "Choose a variant of *{name}*:",
    },
    "PRODUCT_NOT_FOUND": {
        "sw": "Samahani, bidhaa hiyo haipatikani kwa sasa.",
        "en": "Sorry, that product is not available right now.",
    },
    "PRODUCT_UNAVAILABLE": {
        "sw": "Pole sana, *{name}* kwa sasa haipatikani kwa sababu stock imeisha. Tutakujulisha ikirudi tena. 🙏",
        "en": "We're very sorry, *{name}* is currently out of stock. We will let you know when it is back. 🙏",
    },
    "PRODUCT_NO_DETAILS": {
        "sw": "Maelezo zaidi yatapatikana hivi karibuni.",
        "en": "More details will be available soon.",
    },

    # ── Cart ───────────────────────────────────────────────
    "CART_ADDED": {
        "sw": "✅ *{name}* imeongezwa kikapuni (×{qty}).",
        "en": "✅ *{name}* added to your cart (×{qty}).",
    },
    "CART_ASK_QUANTITY": {
        "sw": "Unahitaji *{name}* ngapi? (TZS {price} kila moja)\nAndika namba, mf. 2.",
        "en": "How many *{name}* would you like? (TZS {price} each)\nType a number, e.g. 2.",
    },
    "CART_ASK_QUANTITY_INVALID": {
        "sw": "Tafadhali andika idadi sahihi kwa namba (1 hadi {max}).",
        "en": "Please type a valid quantity as a number (1 to {max}).",
    },
    "CART_QUANTITY_OVER_STOCK": {
        "sw": "Samahani, zimebaki *{stock}* tu za *{name}*. Andika idadi ndogo zaidi.",
        "en": "Sorry, only *{stock}* of *{name}* are left. Please type a smaller quantity.",
    },
    "CART_NEXT": {
        "sw": "Ungependa kufanya nini sasa?",
        "en": "What would you like to do next?",
    },
    "CART_EMPTY": {"sw": "🧺 Kikapu chako kiko tupu.", "en": "🧺 Your cart is empty."},
    "CART_SUMMARY_HEADER": {"sw": "🧺 Kikapu chako:", "en": "🧺 Your cart:"},
    "CART_LINE": {"sw": "• {name} ×{qty} — TZS {amount}", "en": "• {name} ×{qty} — TZS {amount}"},
    "CART_TOTAL": {"sw": "Jumla: TZS {total}", "en": "Total: TZS {total}"},
    "CART_CLEAR": {"sw": "🧹 Futa kikapu", "en": "🧹 Clear cart"},
    "CART_CLEARED": {"sw": "🧹 Kikapu kimefutwa.", "en": "🧹 Your cart has been cleared."},

    # ── Checkout flow ──────────────────────────────────────
    "FLOW_CHOOSE_AREA": {
        "sw": "Uko ndani ya Dar es Salaam au nje ya Dar? 📍",
        "en": "Are you inside Dar es Salaam or outside? 📍",
    },
    "FLOW_AREA_INSIDE": {"sw": "🏙️ Ndani ya Dar", "en": "🏙️ Inside Dar"},
    "FLOW_AREA_OUTSIDE": {"sw": "🚌 Nje ya Dar", "en": "🚌 Outside Dar"},
    "FLOW_CHOOSE_MODE": {
        "sw": "Ungependa kuletewa au kuchukua mwenyewe? 🚚🏢",
        "en": "Would you like delivery or pickup? 🚚🏢",
    },
    "FLOW_MODE_DELIVERY": {"sw": "🚚 Letewa", "en": "🚚 Delivery"},
    "FLOW_MODE_PICKUP": {"sw": "🏢 Chukua mwenyewe", "en": "🏢 Pickup"},
    "FLOW_PICKUP_INFO": {
        "sw": "Tupo Keko Modern Furniture, mkabala na Omax Bar. Wasiliana nasi kwa maelezo zaidi.",
        "en": "We are at Keko Modern Furniture, opposite Omax Bar. Contact us for more details.",
    },
    "FLOW_ASK_NAME": {"sw": "Taja *jina lako kamili* 🙏", "en": "Please send your *full name* 🙏"},
    "FLOW_ASK_PHONE": {
        "sw": "Weka namba ya simu ya kupokelea mzigo ☎️",
        "en": "Send the phone number for receiving the parcel ☎️",
    },
    "FLOW_ASK_REGION": {
        "sw": "Uko mkoa gani? (mf. Arusha, Mwanza) 🗺️",
        "en": "Which region are you in? (e.g. Arusha, Mwanza) 🗺️",
    },
    "FLOW_PICK_DISTRICT_TITLE": {"sw": "Chagua Wilaya 🗺️", "en": "Choose District 🗺️"},
    "FLOW_PICK_DISTRICT_BODY": {
        "sw": "Chagua wilaya yako, andika jina lake, au *tuma Location* 📍",
        "en": "Choose your district, type its name, or *share your Location* 📍",
    },
    "FLOW_PICK_WARD_TITLE": {"sw": "Chagua Kata 📍", "en": "Choose Ward 📍"},
    "FLOW_PICK_WARD_BODY": {
        "sw": "{district}: chagua kata yako au andika jina la kata.",
        "en": "{district}: choose your ward or type the ward name.",
    },
    "FLOW_PICK_STREET_TITLE": {"sw": "Chagua Mtaa 🧭", "en": "Choose Street 🧭"},
    "FLOW_PICK_STREET_BODY": {
        "sw": "{ward}: kwa usahihi zaidi wa gharama, chagua mtaa wako au *tuma Location*.",
        "en": "{ward}: for a more accurate fee, pick your street or *share your Location*.",
    },
    "FLOW_STREET_PAGE_MORE": {
        "sw": "Orodha inaendelea… jibu kwa namba au tuma *next* kuendelea.",
        "en": "List continues… reply with a number or send *next*.",
    },
    "FLOW_STREETS_SECTION": {"sw": "Mitaa", "en": "Streets"},
    "FLOW_OPTIONS_SECTION": {"sw": "Chaguo zingine", "en": "Other options"},
    "FLOW_STREET_SKIP": {"sw": "⏭️ Ruka mtaa", "en": "⏭️ Skip street"},
    "FLOW_SHARE_LOCATION": {"sw": "📡 Tuma Location", "en": "📡 Share Location"},
    "FLOW_ASK_GPS": {
        "sw": "Tafadhali tuma *Location* yako kupitia WhatsApp 📍",
        "en": "Please share your *Location* through WhatsApp 📍",
    },
    "FLOW_DISTANCE_QUOTE": {
        "sw": "📏 Umbali uliotumika: ~{km} km ({place})\n💵 Gharama ya usafirishaji: TZS {fee}",
        "en": "📏 Distance used: ~{km} km ({place})\n💵 Delivery fee: TZS {fee}",
    },
    "FLOW_OUTSIDE_QUOTE": {
        "sw": "🚌 Usafirishaji nje ya Dar: TZS {fee} (bei moja kwa mikoa yote).",
        "en": "🚌 Delivery outside Dar: TZS {fee} (flat rate for all regions).",
    },
    "FLOW_PLACE_GPS": {"sw": "Location", "en": "GPS pin"},

    # ── Summary ────────────────────────────────────────────
    "CHECKOUT_SUMMARY_HEADER": {"sw": "📦 *Muhtasari wa Oda*", "en": "📦 *Order summary*"},
    "CHECKOUT_SUMMARY_NAME": {"sw": "Jina: {name}", "en": "Name: {name}"},
    "CHECKOUT_SUMMARY_PHONE": {"sw": "Simu: {phone}", "en": "Phone: {phone}"},
    "CHECKOUT_SUMMARY_AREA": {"sw": "Eneo: {area}", "en": "Area: {area}"},
    "CHECKOUT_SUMMARY_FEE": {"sw": "Usafirishaji: TZS {fee}", "en": "Delivery: TZS {fee}"},
    "CHECKOUT_SUMMARY_TOTAL": {"sw": "*Jumla: TZS {total}*", "en": "*Total: TZS {total}*"},

    # ── Payment ────────────────────────────────────────────
    "PAYMENT_CHOOSE": {"sw": "Chagua njia ya kulipa 💳", "en": "Choose how to pay 💳"},
    "PAYMENT_SECTION": {"sw": "Njia za malipo", "en": "Payment methods"},
    "PAYMENT_NONE": {
        "sw": "Njia za malipo hazijawekwa bado. Tutawasiliana nawe hivi punde.",
        "en": "Payment methods are not configured yet. We will contact you shortly.",
    },
    "PAYMENT_COD_ROW": {"sw": "💵 Lipa ukipokea", "en": "💵 Cash on delivery"},
    "PAYMENT_COD_CONFIRM": {
        "sw": "✅ Sawa! Utalipa pesa taslimu utakapopokea mzigo. Asante kwa kununua!",
        "en": "✅ Done! You will pay cash when the parcel arrives. Thank you for shopping!",
    },
    "PAYMENT_SELECTED": {
        "sw": "Lipa *TZS {total}* kupitia *{label}*: {value}",
        "en": "Pay *TZS {total}* via *{label}*: {value}",
    },
    "PAYMENT_DONE_CTA": {
        "sw": "Ukimaliza kulipa, bonyeza kitufe hiki 👇",
        "en": "When you have paid, tap this button 👇",
    },
    "PAYMENT_DONE_BUTTON": {"sw": "✅ Nimemaliza kulipa", "en": "✅ I have paid"},

    # ── Proof of payment ───────────────────────────────────
    "PROOF_ASK": {
        "sw": "Tuma *majina kamili ya mlipaji* au picha ya risiti ya malipo 🧾",
        "en": "Send the *payer's full names* or a photo of the payment receipt 🧾",
    },
    "PROOF_OK_NAMES": {
        "sw": "✅ Asante! Tumepokea majina ya mlipaji: *{name}*. Tutathibitisha malipo hivi punde.",
        "en": "✅ Thank you! We received the payer's names: *{name}*. We will confirm the payment shortly.",
    },
    "PROOF_INVALID": {
        "sw": "Tafadhali tuma majina mawili au zaidi ya mlipaji (mf. *Asha Juma*).",
        "en": "Please send two or more names of the payer (e.g. *Asha Juma*).",
    },

    # ── Order tracking ─────────────────────────────────────
    "TRACK_ASK_NAME": {
        "sw": "Andika jina ulilotumia kuagiza, au namba ya oda (mf. {prefix}-12) 🔎",
        "en": "Type the name you ordered with, or your order number (e.g. {prefix}-12) 🔎",
    },
    "TRACK_RESULT": {
        "sw": "📦 Oda *{code}*\nHali: {status}\nJumla: TZS {total}\nTarehe: {date}",
        "en": "📦 Order *{code}*\nStatus: {status}\nTotal: TZS {total}\nDate: {date}",
    },
    "TRACK_NONE": {
        "sw": "Hatukupata oda yoyote kwa \"{query}\".",
        "en": "We could not find any order for \"{query}\".",
    },
    "ORDER_CODE": {
        "sw": "Namba ya order yako ni: *{code}*.\nTafadhali ihifadhi kwa ajili ya ufuatiliaji.",
        "en": "Your order number is: *{code}*.\nPlease keep it for tracking.",
    },
    "ORDERS_LIST_HEADER": {"sw": "📦 Oda zako", "en": "📦 Your orders"},
    "ORDERS_LIST_BODY": {
        "sw": "Chagua oda kuona maelezo yake.",
        "en": "Choose an order to see its details.",
    },
    "ORDERS_LIST_SECTION": {"sw": "Oda za karibuni", "en": "Recent orders"},
    "ORDERS_SEARCH_ROW": {"sw": "🔎 Tafuta kwa jina/namba", "en": "🔎 Search by name/number"},
    "ORDERS_NONE": {
        "sw": "Hatukupata oda hiyo kwenye namba yako.",
        "en": "We could not find that order for your number.",
    },
    "ORDERS_DETAIL_HEADER": {"sw": "📦 Oda *{code}*", "en": "📦 Order *{code}*"},
    "ORDERS_DETAIL_ITEMS": {"sw": "Bidhaa:", "en": "Items:"},
    "ORDERS_DETAIL_LINE": {"sw": "• {name} ×{qty}", "en": "• {name} ×{qty}"},
    "ORDERS_DETAIL_FOOTER": {
        "sw": "Jumla: TZS {total}\nHali: {status}\nTarehe: {date}",
        "en": "Total: TZS {total}\nStatus: {status}\nDate: {date}",
    },
    "ORDERS_PAY_BUTTON": {"sw": "💳 Lipa sasa", "en": "💳 Pay now"},
    "ORDERS_CANCEL_BUTTON": {"sw": "❌ Ghairi oda", "en": "❌ Cancel order"},
    "ORDERS_PAY_HEADER": {
        "sw": "Unalipia oda *{code}*.",
        "en": "You are paying for order *{code}*.",
    },
    "ORDERS_PAY_NOT_PENDING": {
        "sw": "Oda *{code}* haisubiri malipo tena.",
        "en": "Order *{code}* is no longer awaiting payment.",
    },
    "ORDERS_CANCEL_OK": {
        "sw": "✅ Oda *{code}* imeghairiwa.",
        "en": "✅ Order *{code}* has been cancelled.",
    },
    "ORDERS_CANCEL_NOT_PENDING": {
        "sw": "Oda *{code}* haiwezi kughairiwa kwa sababu tayari inashughulikiwa. Ongea na wakala kwa msaada.",
        "en": "Order *{code}* can no longer be cancelled because it is already being handled. Talk to an agent for help.",
    },
    "ORDER_STATUS_PENDING": {"sw": "⌛ Inasubiri malipo/uthibitisho", "en": "⌛ Awaiting payment/confirmation"},
    "ORDER_STATUS_PAID": {"sw": "✅ Imelipwa, inaandaliwa", "en": "✅ Paid, being prepared"},
    "ORDER_STATUS_ENROUTE": {"sw": "🚚 Iko njiani", "en": "🚚 On the way"},
    "ORDER_STATUS_DELIVERED": {"sw": "📬 Imewasilishwa", "en": "📬 Delivered"},
    "ORDER_STATUS_CANCELLED": {"sw": "❌ Imesitishwa", "en": "❌ Cancelled"},

    # ── Help & agent ───────────────────────────────────────
    "FAQ_TEXT": {
        "sw": (
            "❓ *Maswali ya mara kwa mara*\n"
            "• Usafirishaji Dar: gharama inategemea umbali kutoka Keko.\n"
            "• Mikoani: tunatuma kwa basi, bei moja.\n"
            "• Malipo: kwa simu au ukipokea (Dar pekee).\n"
            "• Msaada zaidi: chagua *Ongea na wakala*."
        ),
        "en": (
            "❓ *Frequently asked questions*\n"
            "• Dar delivery: the fee depends on distance from Keko.\n"
            "• Other regions: we ship by bus at a flat rate.\n"
            "• Payment: mobile money or cash on delivery (Dar only).\n"
            "• More help: choose *Talk to an agent*."
        ),
    },
    "AGENT_REPLY": {
        "sw": "👨‍💼 Wakala wetu atakujibu hivi punde. Ukitaka kurudi kwa bot, bonyeza hapa chini.",
        "en": "👨‍💼 An agent will reply shortly. To return to the bot, tap below.",
    },
    "AGENT_RETURN_BUTTON": {"sw": "🤖 Rudi kwa bot", "en": "🤖 Back to bot"},
}


def t(key: str, lang, **kwargs) -> str:
    lang = getattr(lang, "value", lang)
    lang = lang if lang in SUPPORTED_LANGS else DEFAULT_LANG
    text = MESSAGES[key][lang]
    return text.format(**kwargs) if kwargs else text


def format_amount(amount: int) -> str:
    """``140000`` → ``"140,000"``."""
    return f"{int(amount):,}"
