from mtabus.cli import main

raise SystemExit(main())
