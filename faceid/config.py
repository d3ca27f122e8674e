# 人脸识别阈值，值越小越严格（欧氏距离）
FACE_MATCH_THRESHOLD = 0.6

# Minimum time between two detect+match runs.
DETECTION_INTERVAL_SECONDS = 0.3

# Upper bound for a single detector call; None disables the bound.
DETECTION_TIMEOUT_SECONDS = 1.0

# Confidence is rounded to this step before debounce comparison (0 = exact).
CONFIDENCE_QUANTUM = 0.1

# Shorter overlaps than this are not comparable.
MIN_DESCRIPTOR_LENGTH = 3

UNKNOWN_LABEL = "未识别"

# Timeout (seconds) for fetching a gallery over HTTP.
GALLERY_HTTP_TIMEOUT = 15

# 常见系统字体候选（macOS/Windows/Linux），中文字体优先
FONT_LIST = [
    # macOS
    "/System/Library/Fonts/STHeiti Medium.ttc",
    "/System/Library/Fonts/PingFang.ttc",
    "/Library/Fonts/Arial Unicode.ttf",
    # Windows
    "C:\\Windows\\Fonts\\msyh.ttc",
    "C:\\Windows\\Fonts\\simsun.ttc",
    # Linux
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttc",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
]
