"""
页面文案（默认语言：简体中文）

每个 bundle 都是纯 JSON 结构，由 Localizer 整体翻译后下发给前端。
"""
from typing import Any, Dict

ANONYMOUS_DISPLAY_NAME = "某位神秘主播"

HOME_PAGE: Dict[str, Any] = {
    "nav": {
        "login": "主播/管理员登录",
    },
    "hero": {
        "title": "连接全球，重塑直播电商",
        "description": "我们致力于通过 AI 技术与本土化运营，为东南亚市场带来前所未有的购物体验。我们不仅仅是在销售商品，更是在传递一种未来的生活方式。",
        "cta_join": "加入我们 (主播入驻)",
        "cta_story": "了解品牌故事",
    },
    "stats": {
        "items": [
            {"id": 1, "name": "覆盖国家", "value": "4+", "icon": "Globe"},
            {"id": 2, "name": "签约主播", "value": "500+", "icon": "Users"},
            {"id": 3, "name": "月GMV增长", "value": "120%", "icon": "TrendingUp"},
            {"id": 4, "name": "合作品牌", "value": "1000+", "icon": "ShoppingBag"},
        ]
    },
    "story": {
        "subtitle": "Our Journey",
        "title": "从零到无限的进击之路",
        "items": [
            {"year": "2020", "title": "梦想启航", "desc": "公司成立于杭州，确立了“出海东南亚”的核心战略。"},
            {"year": "2021", "title": "深耕越南", "desc": "在胡志明市建立首个海外直播基地，签约首批 50 名本土主播。"},
            {"year": "2022", "title": "技术赋能", "desc": "自主研发 AI 选品系统，直播间转化率提升 200%。"},
            {"year": "2023", "title": "全域爆发", "desc": "拓展至泰国、马来、菲律宾，成为 TikTok Shop 头部服务商。"},
            {"year": "2024", "title": "AI 时代", "desc": "全面引入大模型，实现直播脚本、短视频文案的自动化生成。"},
        ],
    },
    "product": {
        "title": "极致选品，严控质量",
        "description": "我们为每一款产品都建立了详尽的数字档案。作为游客，您可以自由浏览我们的产品电子手册；作为主播，您可以获得 AI 辅助的深度卖点解析。",
        "cta": "浏览产品库",
    },
    "footer": {
        "rights": "版权所有，保留一切权利。",
    },
}

LOGIN_PAGE: Dict[str, Any] = {
    "title": "主播 / 管理员登录",
    "tab_sign_in": "登录",
    "tab_sign_up": "注册",
    "label_email": "邮箱",
    "label_password": "密码",
    "label_username": "主播昵称",
    "label_country": "所属国家",
    "label_admin_code": "管理员邀请码 (可选)",
    "btn_submit": "提交",
    "msg_sign_up_ok": "注册成功，请登录",
    "msg_invalid": "邮箱或密码错误",
}

DASHBOARD_PAGE: Dict[str, Any] = {
    "title": "仪表盘",
    "welcome": "欢迎回来",
    "admin_badge": "您拥有管理员权限",
    "cards": [
        {"key": "schedule", "title": "直播排班", "desc": "查看本周排班并汇报涨粉数据"},
        {"key": "products", "title": "产品库", "desc": "多语言商品资料与图案图片"},
        {"key": "ai_tools", "title": "AI 文案助手", "desc": "一键生成短视频文案与直播脚本"},
        {"key": "feedback", "title": "意见反馈", "desc": "样品申请、直播问题、售后问题"},
        {"key": "guide", "title": "直播中心", "desc": "政策、活动、教程与公告"},
    ],
    "btn_sign_out": "退出登录",
}

SCHEDULE_PAGE: Dict[str, Any] = {
    "title": "直播排班表",
    "label_time_slot": "时间段",
    "btn_prev_week": "上一周",
    "btn_next_week": "下一周",
    "btn_export": "导出 Excel",
    "btn_add_shop": "新增店铺",
    "label_unassigned": "空闲",
    "modal_assign_title": "安排主播",
    "modal_report_title": "汇报直播数据",
    "label_fans_added": "本场涨粉",
    "label_mood": "直播备注",
    "msg_only_assigned": "只能汇报自己负责的时段",
}

FEEDBACK_PAGE: Dict[str, Any] = {
    "header_title": "意见反馈中心",
    "btn_back": "返回工作台",
    "btn_publish": "发起反馈",
    "cat_all": "全部",
    "cat_sample": "样品申请",
    "cat_live_issue": "直播问题",
    "cat_after_sales": "售后问题",
    "cat_other": "其他建议",
    "label_anonymous": ANONYMOUS_DISPLAY_NAME,
    "label_official_reply": "官方回复",
    "label_related_product": "相关产品",
    "label_logistics": "物流单号：",
    "status_processed": "已处理",
    "status_pending": "待处理",
    "modal_title": "发布反馈",
    "label_category": "问题分类",
    "label_product": "选择产品 (可选)",
    "placeholder_product": "-- 请选择产品库中的商品 --",
    "label_desc": "详细描述",
    "label_reason": "备注 / 申请理由",
    "placeholder_desc": "请详细描述...",
    "label_images": "上传图片",
    "label_anon": "匿名发布 (隐藏我的名字)",
    "btn_submit": "提交发布",
    "empty_title": "暂无反馈内容",
    "empty_desc": "该分类下暂时没有讨论，快来发布第一条吧！",
    "btn_empty_action": "发布反馈",
    "msg_fill_content": "请输入内容",
    "msg_sample_req": "申请样品请至少选择一个产品或上传图片",
    "msg_fail": "发布失败: ",
}

GUIDE_PAGE: Dict[str, Any] = {
    "title": "直播中心",
    "tabs": [
        {"key": "policy", "label": "平台政策"},
        {"key": "activity", "label": "店铺活动"},
        {"key": "tutorial", "label": "直播教程"},
        {"key": "notice", "label": "通知公告"},
    ],
    "label_coupon": "优惠券数量",
    "label_activity_code": "活动代码",
    "label_period": "活动时间",
    "label_steps": "操作步骤",
    "label_notes": "注意事项",
    "empty_title": "暂无内容",
}

PRODUCTS_PAGE: Dict[str, Any] = {
    "title": "产品库",
    "placeholder_search": "搜索 SKU 或商品名称",
    "label_size": "尺寸",
    "label_features": "特点",
    "label_patterns": "图案图片",
    "btn_import": "导入 Excel",
    "btn_generate": "AI 生成文案",
    "msg_import_done": "导入完成",
}

PAGE_BUNDLES: Dict[str, Dict[str, Any]] = {
    "home": HOME_PAGE,
    "login": LOGIN_PAGE,
    "dashboard": DASHBOARD_PAGE,
    "schedule": SCHEDULE_PAGE,
    "feedback": FEEDBACK_PAGE,
    "guide": GUIDE_PAGE,
    "products": PRODUCTS_PAGE,
}
