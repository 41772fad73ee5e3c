"""Canned drone-assistant responses, keyed by language and topic.

``resolve`` is the single entry point used by both transports. It is pure and
total: unknown languages fall back to English, unknown or missing topics fall
back to the language's default answer.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

DEFAULT_LANGUAGE = "en"
DEFAULT_TOPIC = "default"

TOPICS: tuple[str, ...] = ("assembly", "components", "maintenance", "simulation", "rules", "usecases")

LANGUAGES: Mapping[str, str] = MappingProxyType({
    "en": "English",
    "hi": "हिंदी (Hindi)",
    "te": "తెలుగు (Telugu)",
    "ta": "தமிழ் (Tamil)",
    "kn": "ಕನ್ನಡ (Kannada)",
    "ml": "മലയാളം (Malayalam)",
    "bn": "বাংলা (Bengali)",
    "mr": "मराठी (Marathi)",
})

# Checked in order, first match wins.
TOPIC_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("assembly", ("assembly", "assemble")),
    ("components", ("component", "parts")),
    ("maintenance", ("maintenance", "maintain")),
    ("rules", ("dgca", "rules", "regulation")),
    ("simulation", ("simulation", "simscape")),
    ("usecases", ("agriculture", "delivery", "use case")),
)

QUICK_TOPICS: Mapping[str, tuple[str, str]] = MappingProxyType({
    "assembly": ("Drone Assembly", "How do I assemble a drone for the first time?"),
    "components": ("Components", "What are the essential components of a drone?"),
    "maintenance": ("Maintenance", "How do I maintain my drone properly?"),
    "simulation": ("Simulations", "How can I use Simscape for drone simulations?"),
    "rules": ("DGCA Rules", "What are the DGCA regulations for drones in India?"),
    "usecases": ("Use Cases", "What are the main use cases for drones in agriculture?"),
})

_EN = MappingProxyType({
    "assembly": (
        "To assemble a drone for the first time, follow these steps:\n\n"
        "1. **Prepare your workspace**: Choose a clean, well-lit area with sufficient space.\n\n"
        "2. **Gather tools**: You'll need screwdrivers, hex keys, and cable ties.\n\n"
        "3. **Frame assembly**: Start with the main frame and attach the arms securely.\n\n"
        "4. **Motor installation**: Mount motors to each arm, ensuring proper orientation.\n\n"
        "5. **ESC connection**: Connect Electronic Speed Controllers to motors and flight controller.\n\n"
        "6. **Flight controller**: Mount centrally and connect to receiver, GPS, and other components.\n\n"
        "7. **Propeller installation**: Attach propellers last, ensuring correct rotation direction.\n\n"
        "8. **Testing**: Perform pre-flight checks before maiden flight."
    ),
    "components": (
        "Essential drone components include:\n\n"
        "**Flight Controller**: The brain of your drone, processes sensor data and controls flight.\n\n"
        "**Motors**: Brushless motors provide thrust. Choose based on payload and frame size.\n\n"
        "**ESCs**: Electronic Speed Controllers regulate motor speed based on flight controller signals.\n\n"
        "**Propellers**: Generate thrust. Size and pitch affect performance and efficiency.\n\n"
        "**Battery**: LiPo batteries provide power. Consider capacity, voltage, and discharge rate.\n\n"
        "**Frame**: Provides structure. Materials include carbon fiber, aluminum, and plastic.\n\n"
        "**Sensors**: Gyroscope, accelerometer, magnetometer, and GPS for stable flight.\n\n"
        "**Camera/Gimbal**: For aerial photography and videography applications."
    ),
    "maintenance": (
        "Proper drone maintenance ensures longevity and safe operation:\n\n"
        "**Pre-flight checks**: Inspect propellers, battery connections, and frame integrity.\n\n"
        "**Battery care**: Store at proper voltage levels, avoid over-discharge, check for swelling.\n\n"
        "**Motor maintenance**: Clean debris, check for smooth rotation, replace worn bearings.\n\n"
        "**Calibration**: Regularly calibrate compass, accelerometer, and gimbal.\n\n"
        "**Firmware updates**: Keep flight controller firmware current for bug fixes and features.\n\n"
        "**Storage**: Store in dry environment, remove batteries for long-term storage."
    ),
    "simulation": (
        "Simscape provides powerful tools for drone simulation:\n\n"
        "**Multibody modeling**: Create accurate physical representations of drone components.\n\n"
        "**Control system design**: Test flight controllers before hardware implementation.\n\n"
        "**Environmental factors**: Simulate wind, turbulence, and payload variations.\n\n"
        "**Sensor modeling**: Include realistic sensor noise and delays.\n\n"
        "**Mission planning**: Test autonomous flight paths and obstacle avoidance.\n\n"
        "**Performance optimization**: Analyze efficiency and stability characteristics."
    ),
    "rules": (
        "DGCA (Directorate General of Civil Aviation) drone regulations in India:\n\n"
        "**Registration**: All drones must be registered on the Digital Sky platform.\n\n"
        "**Pilot license**: RPAS (Remotely Piloted Aircraft Systems) pilot license required "
        "for commercial operations.\n\n"
        "**No-fly zones**: Restricted around airports, military installations, and international borders.\n\n"
        "**Altitude limits**: Maximum 400 feet AGL (Above Ground Level) for civilian operations.\n\n"
        "**Visual line of sight**: Pilot must maintain visual contact with drone.\n\n"
        "**Insurance**: Third-party insurance mandatory for commercial operations.\n\n"
        "**Import regulations**: Type certificate required for drone imports."
    ),
    "usecases": (
        "Drone applications in agriculture and other sectors:\n\n"
        "**Precision Agriculture**: Crop monitoring, pest detection, and yield estimation "
        "using multispectral imaging.\n\n"
        "**Spraying Operations**: Targeted pesticide and fertilizer application with GPS guidance.\n\n"
        "**Livestock Monitoring**: Track animal health and movement patterns.\n\n"
        "**Delivery Services**: Last-mile delivery for medical supplies and e-commerce.\n\n"
        "**Surveillance**: Security monitoring, border patrol, and disaster response.\n\n"
        "**Infrastructure Inspection**: Power lines, pipelines, and building assessments.\n\n"
        "**Mapping and Surveying**: High-resolution aerial mapping and 3D modeling."
    ),
    "default": (
        "I'm your Drone AI Assistant! I can help you with drone assembly, components, maintenance, "
        "DGCA regulations in India, simulations, and various use cases like agriculture and delivery. "
        "What would you like to know?"
    ),
})

_HI = MappingProxyType({
    "assembly": (
        "पहली बार ड्रोन असेंबली के लिए इन चरणों का पालन करें:\n\n"
        "1. **कार्यस्थल तैयार करें**: एक साफ, अच्छी रोशनी वाला क्षेत्र चुनें।\n\n"
        "2. **उपकरण इकट्ठे करें**: स्क्रूड्राइवर, हेक्स की, और केबल टाई की आवश्यकता होगी।\n\n"
        "3. **फ्रेम असेंबली**: मुख्य फ्रेम से शुरू करें और आर्म्स को सुरक्षित रूप से जोड़ें।\n\n"
        "4. **मोटर इंस्टॉलेशन**: प्रत्येक आर्म पर मोटर माउंट करें।\n\n"
        "5. **ESC कनेक्शन**: इलेक्ट्रॉनिक स्पीड कंट्रोलर्स को मोटर्स और फ्लाइट कंट्रोलर से जोड़ें।\n\n"
        "क्या आपको किसी विशिष्ट चरण के बारे में और जानकारी चाहिए?"
    ),
    "rules": (
        "भारत में ड्रोन के लिए DGCA (नागर विमानन महानिदेशालय) नियम:\n\n"
        "**पंजीकरण**: सभी ड्रोन का Digital Sky प्लेटफॉर्म पर पंजीकरण अनिवार्य है।\n\n"
        "**पायलट लाइसेंस**: व्यावसायिक संचालन के लिए RPAS पायलट लाइसेंस आवश्यक है।\n\n"
        "**नो-फ्लाई ज़ोन**: हवाई अड्डों, सैन्य प्रतिष्ठानों और अंतरराष्ट्रीय सीमाओं के पास उड़ान प्रतिबंधित है।\n\n"
        "**ऊंचाई सीमा**: नागरिक संचालन के लिए अधिकतम 400 फीट AGL।\n\n"
        "**बीमा**: व्यावसायिक संचालन के लिए थर्ड-पार्टी बीमा अनिवार्य है।"
    ),
    "default": (
        "मैं आपका ड्रोन AI असिस्टेंट हूं! मैं ड्रोन असेंबली, घटकों, रखरखाव, "
        "भारत में DGCA नियमों आदि में आपकी मदद कर सकता हूं।"
    ),
})

RESPONSES: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "en": _EN,
    "hi": _HI,
    "te": MappingProxyType({
        "default": (
            "నేను మీ డ్రోన్ AI అసిస్టెంట్! డ్రోన్ అసెంబ్లీ, భాగాలు, నిర్వహణ, "
            "భారతదేశంలో DGCA నిబంధనలు మొదలైన వాటిలో నేను మీకు సహాయం చేయగలను।"
        ),
    }),
    "ta": MappingProxyType({
        "default": (
            "நான் உங்கள் ட்ரோன் AI உதவியாளர்! ட்ரோன் அசெம்ப்ளி, கூறுகள், பராமரிப்பு, "
            "இந்தியாவில் DGCA விதிமுறைகள் போன்றவற்றில் உங்களுக்கு உதவ முடியும்."
        ),
    }),
    "kn": MappingProxyType({
        "default": (
            "ನಾನು ನಿಮ್ಮ ಡ್ರೋನ್ AI ಸಹಾಯಕ! ಡ್ರೋನ್ ಅಸೆಂಬ್ಲಿ, ಘಟಕಗಳು, ನಿರ್ವಹಣೆ, "
            "ಭಾರತದಲ್ಲಿ DGCA ನಿಯಮಗಳು ಇತ್ಯಾದಿಗಳಲ್ಲಿ ನಾನು ನಿಮಗೆ ಸಹಾಯ ಮಾಡಬಲ್ಲೆ."
        ),
    }),
    "ml": MappingProxyType({
        "default": (
            "ഞാൻ നിങ്ങളുടെ ഡ്രോൺ AI അസിസ്റ്റന്റ് ആണ്! ഡ്രോൺ അസംബ്ലി, ഘടകങ്ങൾ, പരിപാലനം, "
            "ഇന്ത്യയിലെ DGCA നിയമങ്ങൾ തുടങ്ങിയവയിൽ എനിക്ക് നിങ്ങളെ സഹായിക്കാൻ കഴിയും."
        ),
    }),
    "bn": MappingProxyType({
        "default": (
            "আমি আপনার ড্রোন AI সহায়ক! ড্রোন অ্যাসেম্বলি, উপাদান, রক্ষণাবেক্ষণ, "
            "ভারতে DGCA নিয়মাবলী ইত্যাদিতে আমি আপনাকে সাহায্য করতে পারি।"
        ),
    }),
    "mr": MappingProxyType({
        "default": (
            "मी तुमचा ड्रोन AI सहाय्यक आहे! ड्रोन असेंब्ली, घटक, देखभाल, "
            "भारतातील DGCA नियम इत्यादींमध्ये मी तुम्हाला मदत करू शकतो।"
        ),
    }),
})


def detect_topic(message: str) -> str | None:
    """Return the first topic whose keywords appear in *message*, if any."""
    lowered = message.lower()
    for topic, keywords in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return None


def response_table(language: str) -> Mapping[str, str]:
    """The response table for *language*, or the default language's table."""
    return RESPONSES.get(language, RESPONSES[DEFAULT_LANGUAGE])


def resolve(user_message: str, language: str, topic: str | None = None) -> str:
    """Pick the canned answer for *user_message*.

    An explicit *topic* wins over keyword detection. Never raises.
    """
    table = response_table(language)
    chosen = topic if topic else detect_topic(user_message or "")
    if chosen is None:
        return table[DEFAULT_TOPIC]
    return table.get(chosen, table[DEFAULT_TOPIC])


def iter_responses() -> Iterator[tuple[str, str, str]]:
    """Yield every stored (language, topic, text) triple."""
    for language, table in RESPONSES.items():
        for topic, text in table.items():
            yield language, topic, text
