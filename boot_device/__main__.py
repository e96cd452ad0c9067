from boot_device.main import main

raise SystemExit(main())
