"""Citizen-facing text catalog and key resolution.

Resolution order: selected language -> default language (en) -> the key
itself, so an unmapped key shows up verbatim instead of breaking a reply.
Department captions use the same mechanism with `dept_<name>` and
`desc_<name>` keys, independent of the language of the department record.
"""

from __future__ import annotations

from typing import Any, Mapping

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "hi", "mr")

LANGUAGE_LABELS: dict[str, str] = {
    "en": "🇬🇧 English",
    "hi": "🇮🇳 हिंदी",
    "mr": "🇮🇳 मराठी",
}

CATALOG: dict[str, dict[str, str]] = {
    "en": {
        "welcome": (
            "🏛️ *Welcome to Zilla Parishad Digital Services*\n\n"
            "We are committed to providing efficient and transparent government services to all citizens.\n\n"
            "Please select your preferred language to continue:"
        ),
        "service_unavailable": (
            "⚠️ *Service Temporarily Unavailable*\n\n"
            "This service is not available right now. Please try again later or contact our helpdesk."
        ),
        "main_menu": "📋 *Government Services Portal*\n\nPlease select the service you wish to access:",
        "menu_button_label": "View Services",
        "menu_section_title": "Available Services",
        "menu_grievance": "📝 Raise Grievance",
        "menu_appointment": "📅 Book Appointment",
        "menu_track": "🔍 Track Status",
        "menu_help": "ℹ️ Help & Support",
        "invalid_option": "❌ *Invalid Selection*\n\nPlease select from the available options using the buttons provided.",
        "help": (
            "ℹ️ *Help & Support*\n\n"
            "• Type *menu* or *hi* to start over\n"
            "• Type *back* to return to the main menu\n"
            "• Type *exit* to end this conversation\n\n"
            "*Office Hours:* 9:00 AM - 6:00 PM, Monday to Saturday"
        ),
        "goodbye": "🙏 Thank you for contacting Zilla Parishad. Send *Hi* anytime to start again.",
        "voice_unsupported": (
            "🎤 *Voice Message Received*\n\n"
            "Voice messages are not supported. Please type your message or use the buttons provided."
        ),
        "error_processing": (
            "⚠️ *Something went wrong*\n\n"
            "We could not process your last request. Please send *Hi* to start again."
        ),
        "grievance_intro": (
            "📝 *Grievance Registration*\n\n"
            "We take all citizen complaints seriously and ensure timely resolution."
        ),
        "grievance_name": "👤 *Citizen Information*\n\nPlease provide your full name as per official documents:",
        "err_name_invalid": "⚠️ *Invalid Name*\n\nPlease enter a valid name (minimum 2 characters).",
        "selection_department": "📂 *Select Department*\n\nPlease select the department related to your request:",
        "btn_select_dept": "Select Department",
        "grievance_description": (
            "📝 *Complaint Details*\n\n"
            "Please provide a detailed description of your complaint:\n\n"
            "• Be specific and clear\n• Include relevant dates and locations"
        ),
        "err_description_short": (
            "⚠️ *Description Too Short*\n\nPlease provide a detailed description (minimum 10 characters)."
        ),
        "grievance_photo": (
            "📷 *Supporting Documents*\n\n"
            "You may send a photo or document to support your complaint, or skip this step."
        ),
        "btn_skip_photo": "⏭️ Skip Photo",
        "btn_upload_photo": "📷 Upload Photo",
        "msg_upload_photo": "📷 Please send your photo or document now:",
        "grievance_confirm": (
            "📋 *Review Your Complaint*\n\n"
            "*Name:* {name}\n*Department:* {department}\n*Description:* {description}\n"
            "*Attachment:* {attachment}\n\nIs this information correct?"
        ),
        "label_attached": "Attached",
        "label_not_attached": "None",
        "btn_confirm_submit": "✅ Confirm & Submit",
        "btn_cancel": "❌ Cancel",
        "grievance_success": (
            "✅ *Grievance Registered Successfully*\n\n"
            "*Reference Number:* {reference}\n*Department:* {department}\n*Status:* Under Review\n\n"
            "Keep this reference number to track your complaint.\n\nThank you for using our services."
        ),
        "grievance_cancel": "❌ *Registration Cancelled*\n\nYour grievance registration has been cancelled.",
        "grievance_error": (
            "❌ *Registration Failed*\n\n"
            "We could not register your complaint. Please send *Hi* to try again or contact our helpdesk."
        ),
        "appointment_book": (
            "📅 *Appointment Booking*\n\n"
            "Schedule an appointment with government departments for in-person services.\n\n"
            "Please select a department:"
        ),
        "msg_no_dept": "⚠️ *No Departments Available*\n\nNo departments are currently available for appointments.",
        "appointment_name": "📋 *Appointment with {department}*\n\n👤 Please provide your full name:",
        "appointment_purpose": "📝 *Purpose of Visit*\n\nPlease describe briefly why you need this appointment:",
        "err_purpose_short": "⚠️ *Purpose Too Short*\n\nPlease provide a brief purpose (minimum 5 characters).",
        "label_select_date": "📅 *Select Appointment Date*\n\nPlease choose a preferred date for your appointment:",
        "label_select_time": "⏰ *Select Time Slot*\n\nPlease choose a preferred time slot:",
        "appointment_confirm": (
            "📋 *Review Your Appointment*\n\n"
            "*Citizen:* {name}\n*Department:* {department}\n*Purpose:* {purpose}\n"
            "*Date:* {date}\n*Time:* {time}\n\nIs this information correct?"
        ),
        "btn_confirm_book": "✅ Confirm & Book",
        "appointment_success": (
            "✅ *Appointment Booked Successfully*\n\n"
            "*Reference Number:* {reference}\n*Department:* {department}\n*Date:* {date}\n*Time:* {time}\n"
            "*Status:* Pending Confirmation\n\nThank you for using our services."
        ),
        "appointment_cancel": "❌ *Appointment Cancelled*\n\nYour appointment booking has been cancelled.",
        "appointment_error": (
            "❌ *Booking Failed*\n\n"
            "We could not book your appointment. Please send *Hi* to try again or contact our helpdesk."
        ),
        "track_prompt": (
            "🔍 *Status Tracking*\n\n"
            "Please enter your reference number:\n\n"
            "✅ *Grievance:* e.g., GRV00000001\n🗓️ *Appointment:* e.g., APT00000001\n\n"
            "If the number is not found, we will show your most recent request."
        ),
        "status_card_grievance": (
            "📌 *Grievance Status Details*\n\n"
            "*Date:* {created}\n*Ref No:* `{reference}`\n\n"
            "*Department:* {department}\n*Category:* {category}\n*Status:* {status}\n\n"
            "*Description:* {description}\n\n"
            "_Our team is monitoring your case. You will receive an update on any progress._"
        ),
        "status_card_appointment": (
            "🗓️ *Appointment Status Details*\n\n"
            "*Date:* {date}\n*Time:* {time}\n*Ref No:* `{reference}`\n\n"
            "*Department:* {department}\n*Citizen:* {name}\n*Status:* {status}\n\n"
            "*Purpose:* {purpose}\n\n"
            "_Please arrive 10 minutes before your scheduled time with a copy of this message._"
        ),
        "err_no_record_found": (
            "❌ *Record Not Found*\n\n"
            "We couldn't find any record matching *\"{reference}\"* associated with your phone number.\n\n"
            "_Please verify the reference number or contact support if the issue persists._"
        ),
        "nav_prompt": "✅ *What would you like to do next?*",
        "nav_track_another": "🔍 Track Another",
        "nav_main_menu": "↩️ Main Menu",
        "label_placeholder_dept": "Pending Assignment",
        "status_PENDING": "⏳ Pending",
        "status_ASSIGNED": "📋 Assigned",
        "status_IN_PROGRESS": "🔄 In Progress",
        "status_RESOLVED": "✅ Resolved",
        "status_CLOSED": "✔️ Closed",
        "status_CONFIRMED": "✅ Confirmed",
        "status_CANCELLED": "❌ Cancelled",
        "status_COMPLETED": "✔️ Completed",
        "notify_new_grievance": (
            "📢 *New Grievance Received*\n\n"
            "*Reference:* {reference}\n*Citizen:* {name}\n*Category:* {category}\n\n{detail}"
        ),
        "notify_new_appointment": (
            "📢 *New Appointment Request*\n\n"
            "*Reference:* {reference}\n*Citizen:* {name}\n*Date:* {date}\n*Time:* {time}\n\n{detail}"
        ),
        "dept_Health Department": "Health Department",
        "desc_Health Department": "Public health services and programs",
        "desc_Education Department": "Schools and educational programs",
        "desc_Water Supply Department": "Water supply and sanitation",
        "desc_Public Works Department": "Roads and public construction",
    },
    "hi": {
        "welcome": (
            "🏛️ *जिला परिषद डिजिटल सेवाओं में आपका स्वागत है*\n\n"
            "कृपया जारी रखने के लिए अपनी पसंदीदा भाषा चुनें:"
        ),
        "service_unavailable": "⚠️ *सेवा अस्थायी रूप से अनुपलब्ध*\n\nकृपया बाद में पुनः प्रयास करें।",
        "main_menu": "📋 *सरकारी सेवा पोर्टल*\n\nकृपया वह सेवा चुनें जिसे आप एक्सेस करना चाहते हैं:",
        "menu_button_label": "सेवाएं देखें",
        "menu_section_title": "उपलब्ध सेवाएं",
        "menu_grievance": "📝 शिकायत दर्ज करें",
        "menu_appointment": "📅 अपॉइंटमेंट बुक करें",
        "menu_track": "🔍 स्थिति ट्रैक करें",
        "menu_help": "ℹ️ सहायता और समर्थन",
        "invalid_option": "❌ *अमान्य चयन*\n\nकृपया दिए गए बटनों में से चुनें।",
        "help": (
            "ℹ️ *सहायता और समर्थन*\n\n"
            "• फिर से शुरू करने के लिए *menu* या *hi* लिखें\n"
            "• मुख्य मेनू के लिए *back* लिखें\n"
            "• बातचीत समाप्त करने के लिए *exit* लिखें"
        ),
        "goodbye": "🙏 जिला परिषद से संपर्क करने के लिए धन्यवाद। फिर से शुरू करने के लिए *Hi* भेजें।",
        "grievance_intro": "📝 *शिकायत पंजीकरण*\n\nहम सभी नागरिक शिकायतों को गंभीरता से लेते हैं।",
        "grievance_name": "👤 *नागरिक जानकारी*\n\nकृपया आधिकारिक दस्तावेजों के अनुसार अपना पूरा नाम प्रदान करें:",
        "err_name_invalid": "⚠️ *अमान्य नाम*\n\nकृपया एक मान्य नाम दर्ज करें (न्यूनतम 2 अक्षर)।",
        "selection_department": "📂 *विभाग चुनें*\n\nकृपया अपने अनुरोध से संबंधित विभाग चुनें:",
        "btn_select_dept": "विभाग चुनें",
        "grievance_description": "📝 *शिकायत विवरण*\n\nकृपया अपनी शिकायत का विस्तृत विवरण प्रदान करें:",
        "err_description_short": "⚠️ *विवरण बहुत छोटा है*\n\nकृपया विस्तृत विवरण प्रदान करें (न्यूनतम 10 अक्षर)।",
        "grievance_photo": "📷 *सहायक दस्तावेज*\n\nआप फोटो या दस्तावेज भेज सकते हैं, या यह चरण छोड़ सकते हैं।",
        "btn_skip_photo": "⏭️ फोटो छोड़ें",
        "btn_upload_photo": "📷 फोटो अपलोड करें",
        "msg_upload_photo": "📷 कृपया अपनी फोटो या दस्तावेज अभी भेजें:",
        "grievance_confirm": (
            "📋 *अपनी शिकायत की समीक्षा करें*\n\n"
            "*नाम:* {name}\n*विभाग:* {department}\n*विवरण:* {description}\n*संलग्नक:* {attachment}\n\n"
            "क्या यह जानकारी सही है?"
        ),
        "label_attached": "संलग्न",
        "label_not_attached": "कोई नहीं",
        "btn_confirm_submit": "✅ पुष्टि करें",
        "btn_cancel": "❌ रद्द करें",
        "grievance_success": (
            "✅ *शिकायत सफलतापूर्वक पंजीकृत*\n\n"
            "*संदर्भ संख्या:* {reference}\n*विभाग:* {department}\n*स्थिति:* समीक्षा के अधीन"
        ),
        "grievance_cancel": "❌ *पंजीकरण रद्द*\n\nआपका शिकायत पंजीकरण रद्द कर दिया गया है।",
        "grievance_error": "❌ *पंजीकरण विफल*\n\nकृपया पुनः प्रयास करने के लिए *Hi* भेजें।",
        "appointment_book": "📅 *अपॉइंटमेंट बुकिंग*\n\nकृपया एक विभाग चुनें:",
        "msg_no_dept": "⚠️ *कोई विभाग उपलब्ध नहीं*\n\nअपॉइंटमेंट के लिए वर्तमान में कोई विभाग उपलब्ध नहीं हैं।",
        "appointment_name": "📋 *{department} के साथ अपॉइंटमेंट*\n\n👤 कृपया अपना पूरा नाम प्रदान करें:",
        "appointment_purpose": "📝 *भेंट का उद्देश्य*\n\nकृपया संक्षेप में उद्देश्य बताएं:",
        "err_purpose_short": "⚠️ *उद्देश्य बहुत छोटा है*\n\nकृपया संक्षिप्त उद्देश्य प्रदान करें (न्यूनतम 5 अक्षर)।",
        "label_select_date": "📅 *अपॉइंटमेंट की तारीख चुनें*",
        "label_select_time": "⏰ *समय स्लॉट चुनें*",
        "btn_confirm_book": "✅ पुष्टि करें और बुक करें",
        "appointment_cancel": "❌ *अपॉइंटमेंट रद्द*\n\nआपकी अपॉइंटमेंट बुकिंग रद्द कर दी गई है।",
        "appointment_error": "❌ *बुकिंग विफल*\n\nकृपया पुनः प्रयास करने के लिए *Hi* भेजें।",
        "track_prompt": "🔍 *स्थिति ट्रैकिंग*\n\nकृपया अपना संदर्भ नंबर दर्ज करें (उदा., GRV00000001):",
        "err_no_record_found": "❌ *कोई रिकॉर्ड नहीं मिला*\n\n*\"{reference}\"* से मेल खाने वाला कोई रिकॉर्ड नहीं मिला।",
        "nav_prompt": "✅ *आप आगे क्या करना चाहेंगे?*",
        "nav_track_another": "🔍 दूसरा ट्रैक करें",
        "nav_main_menu": "↩️ मुख्य मेनू",
        "label_placeholder_dept": "असाइनमेंट लंबित है",
        "status_PENDING": "⏳ लंबित",
        "status_ASSIGNED": "📋 असाइन किया गया",
        "status_IN_PROGRESS": "🔄 प्रगति पर",
        "status_RESOLVED": "✅ हल हो गया",
        "status_CLOSED": "✔️ बंद",
        "status_CONFIRMED": "✅ पुष्टि की गई",
        "status_CANCELLED": "❌ रद्द",
        "status_COMPLETED": "✔️ पूर्ण",
        "dept_Health Department": "स्वास्थ्य विभाग",
        "dept_Education Department": "शिक्षा विभाग",
        "dept_Water Supply Department": "जल आपूर्ति विभाग",
        "dept_Public Works Department": "लोक निर्माण विभाग",
    },
    "mr": {
        "welcome": (
            "🏛️ *जिल्हा परिषद डिजिटल सेवांमध्ये आपले स्वागत आहे*\n\n"
            "कृपया पुढे जाण्यासाठी तुमची पसंतीची भाषा निवडा:"
        ),
        "service_unavailable": "⚠️ *सेवा तात्पुरती अनुपलब्ध*\n\nकृपया नंतर पुन्हा प्रयत्न करा.",
        "main_menu": "📋 *शासकीय सेवा पोर्टल*\n\nकृपया तुम्हाला हवी असलेली सेवा निवडा:",
        "menu_button_label": "सेवा पहा",
        "menu_section_title": "उपलब्ध सेवा",
        "menu_grievance": "📝 तक्रार नोंदवा",
        "menu_appointment": "📅 अपॉइंटमेंट बुक करा",
        "menu_track": "🔍 स्थिती तपासा",
        "menu_help": "ℹ️ मदत आणि समर्थन",
        "invalid_option": "❌ *अवैध निवड*\n\nकृपया दिलेल्या बटणांमधून निवडा.",
        "goodbye": "🙏 जिल्हा परिषदेशी संपर्क साधल्याबद्दल धन्यवाद. पुन्हा सुरू करण्यासाठी *Hi* पाठवा.",
        "grievance_intro": "📝 *तक्रार नोंदणी*\n\nआम्ही सर्व नागरिकांच्या तक्रारी गांभीर्याने घेतो.",
        "grievance_name": "👤 *नागरिक माहिती*\n\nकृपया अधिकृत कागदपत्रांनुसार तुमचे पूर्ण नाव द्या:",
        "err_name_invalid": "⚠️ *अवैध नाव*\n\nकृपया वैध नाव प्रविष्ट करा (किमान 2 अक्षरे).",
        "selection_department": "📂 *विभाग निवडा*\n\nकृपया तुमच्या विनंतीशी संबंधित विभाग निवडा:",
        "btn_select_dept": "विभाग निवडा",
        "grievance_description": "📝 *तक्रारीचा तपशील*\n\nकृपया तुमच्या तक्रारीचे सविस्तर वर्णन करा:",
        "err_description_short": "⚠️ *वर्णन खूप लहान आहे*\n\nकृपया सविस्तर वर्णन द्या (किमान 10 अक्षरे).",
        "grievance_photo": "📷 *सहाय्यक कागदपत्रे*\n\nतुम्ही फोटो किंवा कागदपत्र पाठवू शकता, किंवा ही पायरी वगळू शकता.",
        "btn_skip_photo": "⏭️ फोटो वगळा",
        "btn_upload_photo": "📷 फोटो अपलोड करा",
        "msg_upload_photo": "📷 कृपया तुमचा फोटो किंवा कागदपत्र आता पाठवा:",
        "btn_confirm_submit": "✅ पुष्टी करा",
        "btn_cancel": "❌ रद्द करा",
        "grievance_success": (
            "✅ *तक्रार यशस्वीरित्या नोंदवली*\n\n"
            "*संदर्भ क्रमांक:* {reference}\n*विभाग:* {department}\n*स्थिती:* पुनरावलोकनाधीन"
        ),
        "grievance_cancel": "❌ *नोंदणी रद्द केली*\n\nतुमची तक्रार नोंदणी रद्द करण्यात आली आहे.",
        "appointment_book": "📅 *अपॉइंटमेंट बुकिंग*\n\nकृपया विभाग निवडा:",
        "msg_no_dept": "⚠️ *कोणतेही विभाग उपलब्ध नाहीत*\n\nसध्या अपॉइंटमेंटसाठी कोणतेही विभाग उपलब्ध नाहीत.",
        "appointment_cancel": "❌ *अपॉइंटमेंट रद्द केली*\n\nतुमची अपॉइंटमेंट बुकिंग रद्द करण्यात आली आहे.",
        "track_prompt": "🔍 *स्थिती तपासणी*\n\nकृपया तुमचा संदर्भ क्रमांक प्रविष्ट करा (उदा., GRV00000001):",
        "nav_prompt": "✅ *तुम्हाला पुढे काय करायला आवडेल?*",
        "nav_track_another": "🔍 दुसरे तपासा",
        "nav_main_menu": "↩️ मुख्य मेनू",
        "status_PENDING": "⏳ प्रलंबित",
        "status_ASSIGNED": "📋 नियुक्त केलेले",
        "status_IN_PROGRESS": "🔄 प्रगतीपथावर",
        "status_RESOLVED": "✅ निवारण झाले",
        "status_CLOSED": "✔️ बंद",
        "dept_Health Department": "आरोग्य विभाग",
        "dept_Education Department": "शिक्षण विभाग",
        "dept_Water Supply Department": "पाणी पुरवठा विभाग",
        "desc_Health Department": "सार्वजनिक आरोग्य सेवा आणि कार्यक्रमांचे व्यवस्थापन करते",
    },
}


class _KeepMissing(dict):
    """format_map helper: unknown placeholders stay as literal `{name}`."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class Localizer:
    """Resolves catalog keys for a language with fallback."""

    def __init__(
        self,
        catalog: Mapping[str, Mapping[str, str]] | None = None,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._catalog = catalog if catalog is not None else CATALOG
        self._default = default_language

    def resolve(self, language: str | None, key: str) -> str | None:
        """Raw template for key: language, then the configured default, then English."""
        for candidate in (language, self._default, DEFAULT_LANGUAGE):
            if not candidate:
                continue
            template = self._catalog.get(candidate, {}).get(key)
            if template:
                return template
        return None

    def text(self, language: str | None, key: str, **params: Any) -> str:
        template = self.resolve(language, key)
        if template is None:
            return key
        if not params:
            return template
        return template.format_map(_KeepMissing(params))

    def department_name(self, language: str | None, name: str) -> str:
        return self.resolve(language, f"dept_{name}") or name

    def department_description(self, language: str | None, name: str, fallback: str = "") -> str:
        return self.resolve(language, f"desc_{name}") or fallback
